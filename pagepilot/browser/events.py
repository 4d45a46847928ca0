"""Notifications dispatched on a session's event bus."""

from bubus import BaseEvent


class TabCreatedEvent(BaseEvent[None]):
	"""A tab was opened by the agent or adopted after an action spawned it."""

	target_id: str
	url: str = 'about:blank'


class TabClosedEvent(BaseEvent[None]):
	target_id: str


class AgentFocusChangedEvent(BaseEvent[None]):
	"""The current tab changed."""

	target_id: str
	page_id: int


class BrowserStateRefreshedEvent(BaseEvent[None]):
	url: str
	title: str
	element_count: int
	tab_count: int
