"""Ordered set of open tabs with a current-tab pointer.

Tabs are identified only by their protocol target id, never by URL or title, since both
change as the tab navigates.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from bubus import BaseEvent, EventBus

from pagepilot.browser.driver import BrowserDriver
from pagepilot.browser.events import AgentFocusChangedEvent, TabClosedEvent, TabCreatedEvent
from pagepilot.browser.views import InvalidTabReference, TabReconciliationError

logger = logging.getLogger(__name__)

LAST_TAB = -1


@dataclass(frozen=True)
class TabHandle:
	target_id: str
	position: int


class TabManager:
	"""Tracks the tabs a session opened or adopted, in insertion order."""

	def __init__(self, driver: BrowserDriver, event_bus: EventBus | None = None, strict: bool = False):
		self.driver = driver
		self.event_bus = event_bus
		self.strict = strict
		self._target_ids: list[str] = []
		self._current_index: int | None = None

	def __len__(self) -> int:
		return len(self._target_ids)

	def __repr__(self) -> str:
		return f'TabManager(tabs={len(self)}, current={self._current_index})'

	@property
	def target_ids(self) -> list[str]:
		return list(self._target_ids)

	@property
	def handles(self) -> list[TabHandle]:
		return [TabHandle(target_id=target_id, position=i) for i, target_id in enumerate(self._target_ids)]

	@property
	def current_index(self) -> int | None:
		return self._current_index

	@property
	def current(self) -> TabHandle | None:
		if self._current_index is None:
			return None
		return TabHandle(target_id=self._target_ids[self._current_index], position=self._current_index)

	def position_of(self, target_id: str) -> int:
		try:
			return self._target_ids.index(target_id)
		except ValueError:
			raise InvalidTabReference(f'Tab {target_id} is not tracked by this session') from None

	async def _dispatch(self, event: BaseEvent) -> None:
		if self.event_bus is not None:
			await self.event_bus.dispatch(event)

	async def open_tab(self, target_id: str, url: str = 'about:blank') -> TabHandle:
		"""Track a newly opened target and make it the current tab."""
		if target_id in self._target_ids:
			raise InvalidTabReference(f'Tab {target_id} is already tracked')
		self._target_ids.append(target_id)
		logger.debug(f'📑 Tracking new tab #{len(self._target_ids) - 1} ({target_id[-4:]})')
		await self._dispatch(TabCreatedEvent(target_id=target_id, url=url))
		handle = await self.switch_tab(LAST_TAB)
		assert handle is not None
		return handle

	async def switch_tab(self, position: int) -> TabHandle | None:
		"""Select a tab by position; -1 selects the most recently opened one.

		Any other out-of-range position is ignored (returns None) unless the manager is strict.
		"""
		if position == LAST_TAB and self._target_ids:
			position = len(self._target_ids) - 1
		if not 0 <= position < len(self._target_ids):
			if self.strict:
				raise InvalidTabReference(f'No tab at position {position} (session has {len(self._target_ids)} tabs)')
			logger.debug(f'Ignoring switch to tab #{position}, session has {len(self._target_ids)} tabs')
			return None

		target_id = self._target_ids[position]
		self._current_index = position
		await self.driver.activate_target(target_id)
		await self._dispatch(AgentFocusChangedEvent(target_id=target_id, page_id=position))
		return TabHandle(target_id=target_id, position=position)

	async def switch_to_target(self, target_id: str) -> TabHandle:
		handle = await self.switch_tab(self.position_of(target_id))
		assert handle is not None
		return handle

	async def close_current_tab(self) -> TabHandle:
		"""Close the current tab and fall back to the first remaining one."""
		index = self._current_index
		if index is None or not 0 <= index < len(self._target_ids):
			raise InvalidTabReference(f'Current tab pointer {index} does not match any of {len(self._target_ids)} tracked tabs')

		target_id = self._target_ids.pop(index)
		self._current_index = None
		closed = TabHandle(target_id=target_id, position=index)
		try:
			await self.driver.close_target(target_id)
			await self._dispatch(TabClosedEvent(target_id=target_id))
			logger.debug(f'🗑️ Closed tab #{index} ({target_id[-4:]}), {len(self._target_ids)} remaining')
		finally:
			# the pointer must land on a tracked tab even when the close command failed
			if self._target_ids:
				await self.switch_tab(0)
		return closed

	async def reconcile_after_action(
		self,
		pre_action_target_ids: Iterable[str],
		post_action_target_ids: Iterable[str],
		post_action_urls: Mapping[str, str] | None = None,
	) -> TabHandle | None:
		"""Adopt the tab an action opened as a side effect, if any.

		New targets are those live after the action that were neither tracked nor present
		before it. Zero is the common case; exactly one is adopted and made current.
		Anything else, or a tracked tab disappearing, leaves the session untrustworthy.
		`post_action_urls` maps live target ids to their URL and is reported on the
		TabCreatedEvent of an adopted tab.
		"""
		pre = set(pre_action_target_ids)
		post = list(dict.fromkeys(post_action_target_ids))
		tracked = set(self._target_ids)

		vanished = [target_id for target_id in self._target_ids if target_id not in post]
		if vanished:
			logger.error(f'❌ Tracked tabs disappeared during action: {vanished}')
			raise TabReconciliationError(f'Tracked tabs {vanished} are no longer open')

		new_targets = [target_id for target_id in post if target_id not in tracked and target_id not in pre]
		ignored = [target_id for target_id in post if target_id not in tracked and target_id in pre]
		if ignored:
			logger.debug(f'Ignoring {len(ignored)} untracked targets that predate the action')

		if not new_targets:
			return None
		if len(new_targets) > 1:
			logger.error(f'❌ Action opened {len(new_targets)} tabs, expected at most one: {new_targets}')
			raise TabReconciliationError(f'Action opened {len(new_targets)} new tabs, expected at most one')

		logger.info(f'📑 Action opened a new tab ({new_targets[0][-4:]}), switching to it')
		url = (post_action_urls or {}).get(new_targets[0], 'about:blank')
		return await self.open_tab(new_targets[0], url=url)
