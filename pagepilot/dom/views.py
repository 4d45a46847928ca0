from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

DEFAULT_INCLUDE_ATTRIBUTES = [
	'title',
	'type',
	'name',
	'role',
	'tabindex',
	'aria-label',
	'placeholder',
	'value',
	'alt',
	'aria-expanded',
]


class SnapshotDecodeError(ValueError):
	"""The probe returned something that is not a usable DOM snapshot."""


class DomTreeCycleError(SnapshotDecodeError):
	"""A node is reachable as its own ancestor through child references."""


class DuplicateHighlightIndexError(SnapshotDecodeError):
	"""Two elements carry the same highlight index (only raised under the 'error' policy)."""


class NodeType(str, Enum):
	ELEMENT_NODE = 'ELEMENT_NODE'
	TEXT_NODE = 'TEXT_NODE'


class DuplicateIndexPolicy(str, Enum):
	OVERWRITE = 'overwrite'
	KEEP_FIRST = 'keep_first'
	ERROR = 'error'


@dataclass(slots=True)
class Coordinates:
	x: int
	y: int


@dataclass(slots=True)
class CoordinateSet:
	top_left: Coordinates
	top_right: Coordinates
	bottom_left: Coordinates
	bottom_right: Coordinates
	center: Coordinates
	width: int
	height: int


@dataclass(slots=True)
class ViewportInfo:
	scroll_x: int = 0
	scroll_y: int = 0
	width: int = 0
	height: int = 0


@dataclass(eq=False)
class DOMBaseNode:
	node_id: str
	is_visible: bool
	# Back-reference for ancestor queries only, the root owns the tree through `children`
	parent: DOMElementNode | None = field(default=None, repr=False)

	node_type: NodeType = field(init=False)


@dataclass(eq=False)
class DOMTextNode(DOMBaseNode):
	text: str = ''

	def __post_init__(self) -> None:
		self.node_type = NodeType.TEXT_NODE

	def has_parent_with_highlight_index(self) -> bool:
		current = self.parent
		while current is not None:
			if current.highlight_index is not None:
				return True
			current = current.parent
		return False


@dataclass(eq=False)
class DOMElementNode(DOMBaseNode):
	"""One element of the page as reported by the in-page probe.

	`highlight_index` is set only for elements the probe judged actionable; it is the
	handle an agent uses with click_element / input_text.
	"""

	tag_name: str = ''
	xpath: str = ''
	attributes: dict[str, str] = field(default_factory=dict)
	is_interactive: bool = False
	is_top_element: bool = False
	is_in_viewport: bool = False
	shadow_root: bool = False
	highlight_index: int | None = None
	viewport_coordinates: CoordinateSet | None = None
	page_coordinates: CoordinateSet | None = None
	viewport_info: ViewportInfo | None = None
	children: list[DOMBaseNode] = field(default_factory=list, repr=False)

	def __post_init__(self) -> None:
		self.node_type = NodeType.ELEMENT_NODE

	def __repr__(self) -> str:
		index = f'[{self.highlight_index}]' if self.highlight_index is not None else ''
		return f'{index}<{self.tag_name} xpath={self.xpath!r} children={len(self.children)}>'

	def iter_descendants(self) -> Iterator[DOMBaseNode]:
		"""Pre-order walk of everything below this element."""
		stack: list[DOMBaseNode] = list(reversed(self.children))
		while stack:
			node = stack.pop()
			yield node
			if node.node_type == NodeType.ELEMENT_NODE:
				assert isinstance(node, DOMElementNode)
				stack.extend(reversed(node.children))

	def get_all_text_till_next_clickable_element(self, max_depth: int = -1) -> str:
		text_parts: list[str] = []
		stack: list[tuple[DOMBaseNode, int]] = [(self, 0)]
		while stack:
			node, depth = stack.pop()
			if max_depth != -1 and depth > max_depth:
				continue

			if node.node_type == NodeType.ELEMENT_NODE:
				assert isinstance(node, DOMElementNode)
				# nested clickable elements render their own line
				if node is not self and node.highlight_index is not None:
					continue
				stack.extend((child, depth + 1) for child in reversed(node.children))
			elif node.node_type == NodeType.TEXT_NODE:
				assert isinstance(node, DOMTextNode)
				text_parts.append(node.text)

		return '\n'.join(text_parts).strip(' ')

	def clickable_elements_to_string(self, include_attributes: list[str] | None = None) -> str:
		from pagepilot.dom.serializer.clickable_elements import ClickableElementsSerializer

		return ClickableElementsSerializer(include_attributes).serialize(self)


SelectorMap = dict[int, DOMElementNode]


@dataclass
class DOMState:
	element_tree: DOMElementNode | None
	selector_map: SelectorMap
	nodes: dict[str, DOMBaseNode] = field(default_factory=dict, repr=False)

	@classmethod
	def empty(cls) -> DOMState:
		return cls(element_tree=None, selector_map={})

	def llm_representation(self, include_attributes: list[str] | None = None) -> str:
		if self.element_tree is None:
			return ''
		return self.element_tree.clickable_elements_to_string(include_attributes)
