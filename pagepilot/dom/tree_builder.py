import logging
from collections.abc import Iterator

from pagepilot.dom.parser import RawSnapshot, parse_snapshot
from pagepilot.dom.views import (
	DOMBaseNode,
	DOMElementNode,
	DomTreeCycleError,
	DOMState,
	DuplicateHighlightIndexError,
	DuplicateIndexPolicy,
	NodeType,
	SelectorMap,
)

logger = logging.getLogger(__name__)


def _register_highlight(
	selector_map: SelectorMap,
	element: DOMElementNode,
	policy: DuplicateIndexPolicy,
) -> None:
	index = element.highlight_index
	assert index is not None

	existing = selector_map.get(index)
	if existing is not None and existing is not element:
		if policy == DuplicateIndexPolicy.ERROR:
			raise DuplicateHighlightIndexError(
				f'Highlight index {index} is used by both {existing.node_id!r} and {element.node_id!r}'
			)
		if policy == DuplicateIndexPolicy.KEEP_FIRST:
			logger.debug(f'Duplicate highlight index {index}: keeping node {existing.node_id!r}, ignoring {element.node_id!r}')
			return
		logger.debug(f'Duplicate highlight index {index}: node {element.node_id!r} replaces {existing.node_id!r}')

	selector_map[index] = element


def _check_acyclic(child_ids: dict[str, list[str]], nodes: dict[str, DOMBaseNode]) -> None:
	"""Reject snapshots whose declared child references loop back on themselves.

	Runs on the references as listed, before parents are assigned, so a cycle is found no
	matter which parent a shared node would end up with. Iterative three-colour DFS, linear
	in nodes plus references.
	"""
	done: set[str] = set()
	on_path: set[str] = set()
	for start in child_ids:
		if start in done:
			continue
		stack: list[tuple[str, Iterator[str]]] = [(start, iter(child_ids[start]))]
		on_path.add(start)
		while stack:
			node_id, pending = stack[-1]
			for child_id in pending:
				if child_id not in nodes or child_id in done:
					continue
				if child_id in on_path:
					raise DomTreeCycleError(f'Node {child_id!r} is reachable from itself through child references')
				on_path.add(child_id)
				stack.append((child_id, iter(child_ids.get(child_id, []))))
				break
			else:
				stack.pop()
				on_path.discard(node_id)
				done.add(node_id)


def build_dom_tree(
	snapshot: RawSnapshot | None,
	duplicate_index_policy: DuplicateIndexPolicy | str = DuplicateIndexPolicy.OVERWRITE,
) -> DOMState:
	"""Link a decoded snapshot into a tree and index its highlighted elements.

	Missing child ids are skipped; a root id that is absent or not an element yields a
	state with no tree rather than an error.
	"""
	if snapshot is None:
		return DOMState.empty()

	policy = DuplicateIndexPolicy(duplicate_index_policy)

	nodes: dict[str, DOMBaseNode] = {}
	child_ids: dict[str, list[str]] = {}
	for node_id in snapshot.node_map:
		node, children = snapshot.materialize(node_id)
		nodes[node_id] = node
		if children:
			child_ids[node_id] = children

	_check_acyclic(child_ids, nodes)

	selector_map: SelectorMap = {}
	missing_children = 0
	for node_id, node in nodes.items():
		if node.node_type != NodeType.ELEMENT_NODE:
			continue
		assert isinstance(node, DOMElementNode)

		if node.highlight_index is not None:
			_register_highlight(selector_map, node, policy)

		for child_id in child_ids.get(node_id, []):
			child = nodes.get(child_id)
			if child is None:
				missing_children += 1
				continue
			if child.parent is not None:
				logger.debug(
					f'Node {child_id!r} already belongs to {child.parent.node_id!r}, ignoring extra parent {node_id!r}'
				)
				continue
			child.parent = node
			node.children.append(child)

	if missing_children:
		logger.debug(f'Skipped {missing_children} child references missing from the snapshot map')

	root: DOMElementNode | None = None
	if snapshot.root_id is not None:
		candidate = nodes.get(snapshot.root_id)
		if isinstance(candidate, DOMElementNode):
			root = candidate
	if root is None:
		logger.warning(f'Snapshot root {snapshot.root_id!r} is missing or not an element, no usable page state')

	return DOMState(element_tree=root, selector_map=selector_map, nodes=nodes)


def construct_dom_tree(data: bytes | str, duplicate_index_policy: DuplicateIndexPolicy | str = DuplicateIndexPolicy.OVERWRITE) -> DOMState:
	"""Decode raw probe output and build the tree in one step."""
	return build_dom_tree(parse_snapshot(data), duplicate_index_policy)
