"""Decoding of the JSON node map produced by the in-page probe.

The probe returns ``{"rootId": ..., "map": {id: descriptor}}``. Decoding is split in two:
`parse_snapshot` validates the envelope, `RawSnapshot.materialize` turns one descriptor into
a typed node on demand. Link resolution happens in `pagepilot.dom.tree_builder`.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pagepilot.dom.views import (
	Coordinates,
	CoordinateSet,
	DOMBaseNode,
	DOMElementNode,
	DOMTextNode,
	NodeType,
	SnapshotDecodeError,
	ViewportInfo,
)

logger = logging.getLogger(__name__)


class _Point(BaseModel):
	model_config = ConfigDict(extra='ignore')

	x: float = 0
	y: float = 0


class _CoordinateSetDescriptor(BaseModel):
	model_config = ConfigDict(extra='ignore')

	top_left: _Point = Field(default_factory=_Point, alias='topLeft')
	top_right: _Point = Field(default_factory=_Point, alias='topRight')
	bottom_left: _Point = Field(default_factory=_Point, alias='bottomLeft')
	bottom_right: _Point = Field(default_factory=_Point, alias='bottomRight')
	center: _Point = Field(default_factory=_Point)
	width: float = 0
	height: float = 0

	def to_coordinate_set(self) -> CoordinateSet:
		def point(p: _Point) -> Coordinates:
			return Coordinates(x=int(p.x), y=int(p.y))

		return CoordinateSet(
			top_left=point(self.top_left),
			top_right=point(self.top_right),
			bottom_left=point(self.bottom_left),
			bottom_right=point(self.bottom_right),
			center=point(self.center),
			width=int(self.width),
			height=int(self.height),
		)


class _ViewportDescriptor(BaseModel):
	model_config = ConfigDict(extra='ignore')

	scroll_x: float = Field(default=0, alias='ScrollX')
	scroll_y: float = Field(default=0, alias='ScrollY')
	width: float = Field(default=0, alias='Width')
	height: float = Field(default=0, alias='Height')


class TextNodeDescriptor(BaseModel):
	model_config = ConfigDict(extra='ignore')

	text: str = ''
	is_visible: bool = Field(default=False, alias='isVisible')


class ElementNodeDescriptor(BaseModel):
	model_config = ConfigDict(extra='ignore')

	tag_name: str = Field(default='', alias='tagName')
	xpath: str = ''
	attributes: dict[str, str] = Field(default_factory=dict)
	is_visible: bool = Field(default=False, alias='isVisible')
	is_interactive: bool | None = Field(default=None, alias='isInteractive')
	is_top_element: bool = Field(default=False, alias='isTopElement')
	is_in_viewport: bool = Field(default=False, alias='isInViewport')
	shadow_root: bool = Field(default=False, alias='shadowRoot')
	highlight_index: int | None = Field(default=None, alias='highlightIndex')
	viewport: _ViewportDescriptor | None = None
	viewport_coordinates: _CoordinateSetDescriptor | None = Field(default=None, alias='viewportCoordinates')
	page_coordinates: _CoordinateSetDescriptor | None = Field(default=None, alias='pageCoordinates')
	children: list[str | int] = Field(default_factory=list)


@dataclass
class RawSnapshot:
	"""Envelope-validated snapshot; descriptors stay raw until materialized."""

	root_id: str | None
	node_map: dict[str, dict[str, Any]]

	def __len__(self) -> int:
		return len(self.node_map)

	@staticmethod
	def classify(descriptor: dict[str, Any]) -> NodeType:
		if descriptor.get('type') == 'TEXT_NODE':
			return NodeType.TEXT_NODE
		return NodeType.ELEMENT_NODE

	def materialize(self, node_id: str) -> tuple[DOMBaseNode, list[str]]:
		"""Build the typed node for `node_id`, returning it with its declared child ids."""
		descriptor = self.node_map[node_id]
		try:
			if self.classify(descriptor) == NodeType.TEXT_NODE:
				text = TextNodeDescriptor.model_validate(descriptor)
				return DOMTextNode(node_id=node_id, is_visible=text.is_visible, text=text.text), []

			element = ElementNodeDescriptor.model_validate(descriptor)
		except ValidationError as e:
			raise SnapshotDecodeError(f'Invalid descriptor for node {node_id!r}: {e}') from e

		viewport_info = None
		if element.viewport is not None:
			viewport_info = ViewportInfo(
				scroll_x=int(element.viewport.scroll_x),
				scroll_y=int(element.viewport.scroll_y),
				width=int(element.viewport.width),
				height=int(element.viewport.height),
			)

		node = DOMElementNode(
			node_id=node_id,
			is_visible=element.is_visible,
			tag_name=element.tag_name,
			xpath=element.xpath,
			attributes=element.attributes,
			# older probes only report visibility, which was read as interactivity
			is_interactive=element.is_interactive if element.is_interactive is not None else element.is_visible,
			is_top_element=element.is_top_element,
			is_in_viewport=element.is_in_viewport,
			shadow_root=element.shadow_root,
			highlight_index=element.highlight_index,
			viewport_coordinates=element.viewport_coordinates.to_coordinate_set() if element.viewport_coordinates else None,
			page_coordinates=element.page_coordinates.to_coordinate_set() if element.page_coordinates else None,
			viewport_info=viewport_info,
		)
		return node, [str(child_id) for child_id in element.children]


def parse_snapshot(data: bytes | str) -> RawSnapshot | None:
	"""Decode probe output. Returns None when the probe produced nothing at all."""
	if isinstance(data, bytes):
		try:
			data = data.decode('utf-8')
		except UnicodeDecodeError as e:
			raise SnapshotDecodeError(f'Snapshot is not valid UTF-8: {e}') from e

	if not data.strip():
		logger.debug('Empty snapshot, no page state available')
		return None

	try:
		payload = json.loads(data)
	except json.JSONDecodeError as e:
		raise SnapshotDecodeError(f'Snapshot is not valid JSON: {e}') from e

	if not isinstance(payload, dict):
		raise SnapshotDecodeError(f'Snapshot must be a JSON object, got {type(payload).__name__}')
	if 'map' not in payload:
		raise SnapshotDecodeError('Snapshot is missing the "map" field')

	node_map = payload['map']
	if not isinstance(node_map, dict):
		raise SnapshotDecodeError(f'Snapshot "map" must be an object, got {type(node_map).__name__}')

	for node_id, descriptor in node_map.items():
		if not isinstance(descriptor, dict):
			raise SnapshotDecodeError(f'Descriptor for node {node_id!r} must be an object')

	root_id = payload.get('rootId')
	if root_id is not None and not isinstance(root_id, str):
		root_id = str(root_id)

	return RawSnapshot(root_id=root_id, node_map=node_map)
