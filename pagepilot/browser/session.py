"""Browser session: tab bookkeeping, browser operations and state refresh."""

import asyncio
import json
import logging
from typing import Any

from bubus import EventBus
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from uuid_extensions import uuid7str

from pagepilot.browser.cdp import CDPDriver
from pagepilot.browser.driver import BrowserDriver
from pagepilot.browser.events import BrowserStateRefreshedEvent
from pagepilot.browser.profile import BrowserProfile
from pagepilot.browser.tabs import TabHandle, TabManager
from pagepilot.browser.views import (
	BrowserError,
	BrowserState,
	InvalidTabReference,
	ScriptResultMismatch,
	StateNotInitialized,
	TabInfo,
)
from pagepilot.dom.service import DomService
from pagepilot.dom.views import DOMElementNode, SelectorMap

SCROLL_Y_JS = 'window.scrollY'
VIEWPORT_HEIGHT_JS = 'window.innerHeight'
TOTAL_HEIGHT_JS = 'document.documentElement.scrollHeight'


class BrowserSession(BaseModel):
	"""One agent's view of a remote browser.

	The session owns the tab list and the cached `BrowserState`. It expects a single
	serialized stream of operations; `action_lock` is held by the action dispatcher and by
	`refresh_state` so concurrent callers cannot interleave.

	```python
	session = BrowserSession(browser_profile=BrowserProfile(cdp_url='http://127.0.0.1:9222'))
	await session.start()
	await session.navigate_to('https://example.com')
	state = await session.refresh_state()
	print(state.llm_representation())
	```
	"""

	model_config = ConfigDict(
		arbitrary_types_allowed=True,
		extra='forbid',
		revalidate_instances='never',
	)

	id: str = Field(default_factory=uuid7str)
	browser_profile: BrowserProfile = Field(default_factory=BrowserProfile)
	event_bus: EventBus = Field(default_factory=EventBus)

	_driver: Any = PrivateAttr(default=None)
	_tabs: TabManager = PrivateAttr()
	_dom_service: DomService = PrivateAttr()
	_cached_state: BrowserState | None = PrivateAttr(default=None)
	_action_lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)
	_started: bool = PrivateAttr(default=False)

	def __init__(self, driver: BrowserDriver | None = None, **data: Any):
		super().__init__(**data)
		self._driver = driver or CDPDriver(
			self.browser_profile.cdp_url,
			navigation_timeout=self.browser_profile.navigation_timeout,
		)
		self._tabs = TabManager(self._driver, event_bus=self.event_bus, strict=self.browser_profile.strict_tab_switch)
		self._dom_service = DomService(self)

	@property
	def logger(self) -> logging.Logger:
		return logging.getLogger(f'pagepilot.{self}')

	def __str__(self) -> str:
		current = self._tabs.current
		tab = current.target_id[-2:] if current else '--'
		return f'BrowserSession#{self.id[-4:]}:{tab}'

	def __repr__(self) -> str:
		return f'{self} (driver={self._driver!r}, profile={self.browser_profile})'

	@property
	def driver(self) -> BrowserDriver:
		return self._driver

	@property
	def tabs(self) -> TabManager:
		return self._tabs

	@property
	def dom_service(self) -> DomService:
		return self._dom_service

	@property
	def action_lock(self) -> asyncio.Lock:
		return self._action_lock

	@property
	def current_target_id(self) -> str:
		current = self._tabs.current
		if current is None:
			raise BrowserError('No current tab - call start() before using the session')
		return current.target_id

	# region - ========== Lifecycle ==========

	async def start(self) -> None:
		"""Connect to the browser and set up the first tab."""
		if self._started:
			return
		await self._driver.connect()
		self._started = True

		if self.browser_profile.adopt_existing_tab:
			targets = await self._driver.get_targets()
			if targets:
				first = targets[0]
				self.logger.debug(f'Adopting existing tab {first.target_id[-4:]} at {first.url}')
				await self._tabs.open_tab(first.target_id, url=first.url)
				return

		await self._open_blank_tab()

	async def stop(self) -> None:
		"""Disconnect from the browser. Open tabs are left as they are."""
		if self._started:
			await self._driver.close()
			self._started = False
		await self.event_bus.stop(clear=True, timeout=5)
		self.logger.debug('🛑 Browser session stopped')

	async def __aenter__(self) -> 'BrowserSession':
		await self.start()
		return self

	async def __aexit__(self, *args: Any) -> None:
		await self.stop()

	# endregion

	# region - ========== Browser operations ==========

	async def _open_blank_tab(self) -> TabHandle:
		target_id = await self._driver.create_target('about:blank')
		return await self._tabs.open_tab(target_id, url='about:blank')

	async def execute_javascript(self, script: str) -> str:
		"""Evaluate a script in the current tab and return the JSON text of its result."""
		target_id = self.current_target_id
		if self.browser_profile.verify_script_channel:
			check = await self._driver.evaluate(target_id, '1+1')
			if check.strip() != '2':
				self.logger.error(f'❌ Script channel returned {check!r} for 1+1')
				raise ScriptResultMismatch(f'JavaScript execution is not working: 1+1 evaluated to {check!r}')
		return await self._driver.evaluate(target_id, script)

	async def navigate_to(self, url: str) -> None:
		await self._driver.navigate(self.current_target_id, url)
		self.logger.info(f'🔗 Navigated to {url}')

	async def open_tab(self, url: str) -> TabHandle:
		handle = await self._open_blank_tab()
		await self._driver.navigate(handle.target_id, url)
		self.logger.info(f'🔗 Opened new tab #{handle.position} with {url}')
		return handle

	async def go_back(self) -> None:
		await self._driver.go_back(self.current_target_id)

	async def go_forward(self) -> None:
		await self._driver.go_forward(self.current_target_id)

	async def switch_tab(self, page_index: int) -> TabHandle | None:
		return await self._tabs.switch_tab(page_index)

	async def close_current_tab(self) -> TabHandle:
		closed = await self._tabs.close_current_tab()
		if not len(self._tabs):
			self.logger.debug('Last tab closed, opening a blank one')
			await self._open_blank_tab()
		return closed

	async def wait(self, seconds: float) -> None:
		await asyncio.sleep(max(seconds, 0))

	async def take_screenshot(self) -> bytes:
		return await self._driver.capture_screenshot(self.current_target_id, quality=self.browser_profile.screenshot_quality)

	async def _evaluate_int(self, expression: str) -> int:
		raw = await self.execute_javascript(expression)
		try:
			return int(float(json.loads(raw)))
		except (TypeError, ValueError) as e:
			raise ScriptResultMismatch(f'Expected a number from {expression}, got {raw!r}') from e

	async def get_scroll_info(self) -> tuple[int, int]:
		"""Pixels above and below the viewport."""
		scroll_y = await self._evaluate_int(SCROLL_Y_JS)
		viewport_height = await self._evaluate_int(VIEWPORT_HEIGHT_JS)
		total_height = await self._evaluate_int(TOTAL_HEIGHT_JS)
		return scroll_y, total_height - (scroll_y + viewport_height)

	async def get_tabs_info(self) -> tuple[list[TabInfo], TabInfo]:
		"""Describe every tracked tab in order, plus the current one."""
		live = {target.target_id: target for target in await self._driver.get_targets()}

		tabs: list[TabInfo] = []
		current: TabInfo | None = None
		current_index = self._tabs.current_index
		for position, target_id in enumerate(self._tabs.target_ids):
			target = live.get(target_id)
			if target is None:
				raise InvalidTabReference(f'Tracked tab {target_id} is no longer open in the browser')
			info = TabInfo(page_id=position, target_id=target_id, url=target.url, title=target.title)
			tabs.append(info)
			if position == current_index:
				current = info

		if current is None:
			raise InvalidTabReference('Session has no current tab')
		return tabs, current

	# endregion

	# region - ========== State ==========

	@property
	def state(self) -> BrowserState:
		if self._cached_state is None:
			raise StateNotInitialized('Browser state requested before the first refresh')
		return self._cached_state

	@property
	def has_state(self) -> bool:
		return self._cached_state is not None

	async def refresh_state(self) -> BrowserState:
		async with self._action_lock:
			return await self._refresh_state()

	async def _refresh_state(self) -> BrowserState:
		await self._dom_service.remove_highlights()
		dom_state = await self._dom_service.get_clickable_elements()
		screenshot = await self.take_screenshot()
		pixels_above, pixels_below = await self.get_scroll_info()
		tabs, current = await self.get_tabs_info()

		state = BrowserState(
			dom_state=dom_state,
			url=current.url,
			title=current.title,
			tabs=tuple(tabs),
			current_tab=current,
			screenshot=screenshot,
			pixels_above=pixels_above,
			pixels_below=pixels_below,
		)
		self._cached_state = state

		await self.event_bus.dispatch(
			BrowserStateRefreshedEvent(
				url=state.url,
				title=state.title,
				element_count=len(dom_state.selector_map),
				tab_count=len(tabs),
			)
		)
		self.logger.debug(
			f'📸 Refreshed state for {state.url}: {len(dom_state.selector_map)} interactive elements, {len(tabs)} tabs'
		)
		return state

	async def get_state_as_text(self) -> str:
		return self.state.llm_representation()

	def get_selector_map(self) -> SelectorMap:
		return self.state.selector_map

	def get_element_by_index(self, index: int) -> DOMElementNode | None:
		return self.state.selector_map.get(index)

	def _require_element(self, index: int) -> DOMElementNode:
		element = self.get_element_by_index(index)
		if element is None:
			msg = f'Element with index {index} does not exist - retry or use alternative actions'
			raise BrowserError(msg, long_term_memory=msg)
		return element

	# endregion

	# region - ========== Element actions ==========

	async def click_element(self, index: int) -> DOMElementNode:
		"""Click the element at `index` and follow a tab it may have opened."""
		element = self._require_element(index)
		pre_action = [target.target_id for target in await self._driver.get_targets()]
		await self._driver.click(self.current_target_id, element.xpath)
		post_action = await self._driver.get_targets()
		await self._tabs.reconcile_after_action(
			pre_action,
			[target.target_id for target in post_action],
			{target.target_id: target.url for target in post_action},
		)
		return element

	async def input_text(self, index: int, text: str) -> DOMElementNode:
		element = self._require_element(index)
		await self._driver.send_keys(self.current_target_id, element.xpath, text)
		return element

	# endregion
