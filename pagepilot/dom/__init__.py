from pagepilot.dom.parser import RawSnapshot, parse_snapshot
from pagepilot.dom.tree_builder import build_dom_tree, construct_dom_tree
from pagepilot.dom.views import (
	DEFAULT_INCLUDE_ATTRIBUTES,
	DOMElementNode,
	DOMState,
	DOMTextNode,
	DomTreeCycleError,
	DuplicateIndexPolicy,
	NodeType,
	SelectorMap,
	SnapshotDecodeError,
)

__all__ = [
	'DEFAULT_INCLUDE_ATTRIBUTES',
	'DOMElementNode',
	'DOMState',
	'DOMTextNode',
	'DomTreeCycleError',
	'DuplicateIndexPolicy',
	'NodeType',
	'RawSnapshot',
	'SelectorMap',
	'SnapshotDecodeError',
	'build_dom_tree',
	'construct_dom_tree',
	'parse_snapshot',
]
