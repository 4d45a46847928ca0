"""
Decoding of the probe's JSON node map into typed nodes.
"""

import json

import pytest

from pagepilot.dom.parser import RawSnapshot, parse_snapshot
from pagepilot.dom.views import DOMElementNode, DOMTextNode, NodeType, SnapshotDecodeError
from tests.ci.conftest import LOGIN_PAGE, element, snapshot, text


@pytest.mark.parametrize('data', [b'', '', '   \n', b'\n\t'])
def test_empty_input_means_no_page_state(data):
	assert parse_snapshot(data) is None


@pytest.mark.parametrize(
	'data',
	[
		b'\xff\xfe not utf-8',
		'{"rootId": "0", "map": ',
		'[1, 2, 3]',
		'"just a string"',
		'{"rootId": "0"}',
		'{"rootId": "0", "map": []}',
		'{"rootId": "0", "map": {"0": "body"}}',
	],
)
def test_malformed_snapshots_raise(data):
	with pytest.raises(SnapshotDecodeError):
		parse_snapshot(data)


def test_snapshot_decode_error_is_a_value_error():
	with pytest.raises(ValueError):
		parse_snapshot('not json')


def test_envelope_keeps_descriptors_raw():
	raw = parse_snapshot(snapshot(LOGIN_PAGE).encode())

	assert isinstance(raw, RawSnapshot)
	assert raw.root_id == '0'
	assert len(raw) == len(LOGIN_PAGE)
	assert raw.node_map['4']['tagName'] == 'input'


def test_numeric_root_id_is_normalized_to_string():
	raw = parse_snapshot(json.dumps({'rootId': 7, 'map': {'7': element('body')}}))

	assert raw is not None
	assert raw.root_id == '7'


def test_missing_root_id_is_allowed():
	raw = parse_snapshot(json.dumps({'map': {'0': element('body')}}))

	assert raw is not None
	assert raw.root_id is None


def test_text_descriptor_materializes_text_node():
	raw = parse_snapshot(snapshot({'3': text('Email')}))
	assert raw is not None

	node, children = raw.materialize('3')

	assert isinstance(node, DOMTextNode)
	assert node.node_type == NodeType.TEXT_NODE
	assert node.text == 'Email'
	assert node.is_visible is True
	assert node.parent is None
	assert children == []


def test_element_descriptor_materializes_all_fields():
	descriptor = element(
		'button',
		'html/body/button',
		highlight=4,
		attributes={'type': 'submit'},
		children=['5', 6],
		isTopElement=True,
		isInViewport=True,
		shadowRoot=False,
		viewport={'ScrollX': 0, 'ScrollY': 120.5, 'Width': 1280, 'Height': 720},
		viewportCoordinates={
			'topLeft': {'x': 10, 'y': 20},
			'topRight': {'x': 110, 'y': 20},
			'bottomLeft': {'x': 10, 'y': 60},
			'bottomRight': {'x': 110, 'y': 60},
			'center': {'x': 60.7, 'y': 40.2},
			'width': 100,
			'height': 40,
		},
	)
	raw = parse_snapshot(snapshot({'4': descriptor}, root_id='4'))
	assert raw is not None

	node, children = raw.materialize('4')

	assert isinstance(node, DOMElementNode)
	assert node.node_id == '4'
	assert node.tag_name == 'button'
	assert node.xpath == 'html/body/button'
	assert node.attributes == {'type': 'submit'}
	assert node.highlight_index == 4
	assert node.is_interactive is True
	assert node.is_top_element is True
	assert node.is_in_viewport is True
	assert node.viewport_info is not None
	assert node.viewport_info.scroll_y == 120
	assert node.viewport_info.width == 1280
	assert node.viewport_coordinates is not None
	assert node.viewport_coordinates.center.x == 60
	assert node.viewport_coordinates.width == 100
	assert node.page_coordinates is None
	assert children == ['5', '6']
	assert node.children == []


def test_visibility_stands_in_for_interactivity_when_probe_omits_it():
	raw = parse_snapshot(snapshot({'0': element('div', visible=True), '1': element('span', visible=False)}))
	assert raw is not None

	div, _ = raw.materialize('0')
	span, _ = raw.materialize('1')

	assert isinstance(div, DOMElementNode) and div.is_interactive is True
	assert isinstance(span, DOMElementNode) and span.is_interactive is False


def test_unknown_descriptor_fields_are_ignored():
	raw = parse_snapshot(snapshot({'0': element('div', somethingNew={'a': 1})}))
	assert raw is not None

	node, _ = raw.materialize('0')

	assert isinstance(node, DOMElementNode)
	assert node.tag_name == 'div'


def test_descriptor_with_wrong_types_raises_on_materialize():
	raw = parse_snapshot(snapshot({'0': {'tagName': 'div', 'highlightIndex': 'first'}}))
	assert raw is not None

	with pytest.raises(SnapshotDecodeError, match="node '0'"):
		raw.materialize('0')
