# @file purpose: Renders the interactive surface of a DOM tree as the text an agent reads

from pagepilot.dom.views import DEFAULT_INCLUDE_ATTRIBUTES, DOMBaseNode, DOMElementNode, DOMTextNode, NodeType


class ClickableElementsSerializer:
	"""Serializes a DOM tree into one line per highlighted element plus loose visible text.

	Highlighted elements render as ``[index]<tag attr;attr>inner text/>``. Their inner text
	stops at nested highlighted elements, which get their own lines. Visible text nodes that
	sit inside a highlighted element are not repeated as separate lines.
	"""

	def __init__(self, include_attributes: list[str] | None = None):
		self.include_attributes = frozenset(include_attributes if include_attributes is not None else DEFAULT_INCLUDE_ATTRIBUTES)

	def serialize(self, root: DOMElementNode | None) -> str:
		if root is None:
			return ''
		return '\n'.join(self.serialize_lines(root))

	def serialize_lines(self, root: DOMElementNode) -> list[str]:
		lines: list[str] = []
		stack: list[DOMBaseNode] = [root]
		while stack:
			node = stack.pop()
			if node.node_type == NodeType.ELEMENT_NODE:
				assert isinstance(node, DOMElementNode)
				if node.highlight_index is not None:
					lines.append(self.format_element(node))
				stack.extend(reversed(node.children))
			elif node.node_type == NodeType.TEXT_NODE:
				assert isinstance(node, DOMTextNode)
				if node.is_visible and not node.has_parent_with_highlight_index():
					lines.append(node.text)
		return lines

	def format_element(self, node: DOMElementNode) -> str:
		attribute_values = [
			value for key, value in node.attributes.items() if key in self.include_attributes and value != node.tag_name
		]
		attributes_str = ';'.join(attribute_values)
		text = node.get_all_text_till_next_clickable_element()

		line = f'[{node.highlight_index}]<{node.tag_name}'
		if attributes_str:
			line += f' {attributes_str}'
		return f'{line}>{text}/>'
