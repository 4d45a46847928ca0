from pagepilot.dom.serializer.clickable_elements import ClickableElementsSerializer

__all__ = ['ClickableElementsSerializer']
