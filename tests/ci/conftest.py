"""
Shared fixtures for the CI suite.

FakeDriver implements the browser driver protocol in memory so session, tab and action
tests run without a browser. Tests script it by setting evaluate results, the snapshot the
probe returns, and which targets a click spawns.
"""

import json
import os
from collections.abc import Callable
from typing import Any

import pytest

# Keep test output under pytest's control
os.environ.setdefault('PAGEPILOT_SETUP_LOGGING', 'false')

from pagepilot.browser.driver import TargetInfo  # noqa: E402
from pagepilot.browser.profile import BrowserProfile  # noqa: E402
from pagepilot.browser.session import BrowserSession  # noqa: E402
from pagepilot.dom.service import REMOVE_HIGHLIGHTS_JS  # noqa: E402


def element(
	tag: str,
	xpath: str = '',
	*,
	children: list[str] | None = None,
	highlight: int | None = None,
	attributes: dict[str, str] | None = None,
	visible: bool = True,
	**extra: Any,
) -> dict[str, Any]:
	"""Element descriptor in the probe's wire format."""
	descriptor: dict[str, Any] = {
		'tagName': tag,
		'xpath': xpath or tag,
		'attributes': attributes or {},
		'isVisible': visible,
		'children': children or [],
	}
	if highlight is not None:
		descriptor['highlightIndex'] = highlight
		descriptor['isInteractive'] = True
	descriptor.update(extra)
	return descriptor


def text(value: str, visible: bool = True) -> dict[str, Any]:
	return {'type': 'TEXT_NODE', 'text': value, 'isVisible': visible}


def snapshot(node_map: dict[str, dict[str, Any]], root_id: str | None = '0') -> str:
	return json.dumps({'rootId': root_id, 'map': node_map})


# A small login form: body > [form > (label "Email", input[0], button[1] > "Sign in")], a[2] > "Help"
LOGIN_PAGE = {
	'0': element('body', 'html/body', children=['1', '7']),
	'1': element('form', 'html/body/form', children=['2', '4', '5']),
	'2': element('label', 'html/body/form/label', children=['3']),
	'3': text('Email'),
	'4': element(
		'input',
		'html/body/form/input',
		highlight=0,
		attributes={'type': 'email', 'name': 'email', 'placeholder': 'you@example.com', 'class': 'field'},
	),
	'5': element('button', 'html/body/form/button', highlight=1, attributes={'type': 'submit'}, children=['6']),
	'6': text('Sign in'),
	'7': element('a', 'html/body/a', highlight=2, attributes={'href': '/help', 'title': 'Help center'}, children=['8']),
	'8': text('Help'),
}


class FakeDriver:
	"""In-memory browser driver that records every call it receives."""

	def __init__(self, targets: list[TargetInfo] | None = None):
		self.targets: list[TargetInfo] = list(targets or [])
		self.calls: list[tuple[Any, ...]] = []
		self.evaluate_results: dict[str, str] = {
			'1+1': '2',
			'window.scrollY': '0',
			'window.innerHeight': '800',
			'document.documentElement.scrollHeight': '800',
			REMOVE_HIGHLIGHTS_JS: '',
		}
		self.snapshot: str = snapshot(LOGIN_PAGE)
		self.screenshot: bytes = b'\xff\xd8fake-jpeg'
		self.on_click: Callable[['FakeDriver', str, str], None] | None = None
		self.connected = False
		self._next_id = 0

	def _new_target_id(self) -> str:
		self._next_id += 1
		return f'FAKE-TARGET-{self._next_id:04d}'

	def spawn_target(self, url: str = 'about:blank', title: str = '') -> str:
		"""Simulate a tab the page opened on its own (window.open, target=_blank)."""
		target_id = self._new_target_id()
		self.targets.append(TargetInfo(target_id=target_id, url=url, title=title))
		return target_id

	def _target(self, target_id: str) -> TargetInfo:
		for target in self.targets:
			if target.target_id == target_id:
				return target
		raise AssertionError(f'unknown target {target_id}')

	def _replace(self, target_id: str, **changes: Any) -> None:
		self.targets = [t.model_copy(update=changes) if t.target_id == target_id else t for t in self.targets]

	async def connect(self) -> None:
		self.calls.append(('connect',))
		self.connected = True

	async def close(self) -> None:
		self.calls.append(('close',))
		self.connected = False

	async def get_targets(self) -> list[TargetInfo]:
		return list(self.targets)

	async def create_target(self, url: str = 'about:blank') -> str:
		target_id = self._new_target_id()
		self.calls.append(('create_target', url))
		self.targets.append(TargetInfo(target_id=target_id, url=url))
		return target_id

	async def activate_target(self, target_id: str) -> None:
		self._target(target_id)
		self.calls.append(('activate_target', target_id))

	async def close_target(self, target_id: str) -> None:
		self._target(target_id)
		self.calls.append(('close_target', target_id))
		self.targets = [t for t in self.targets if t.target_id != target_id]

	async def navigate(self, target_id: str, url: str) -> None:
		self._target(target_id)
		self.calls.append(('navigate', target_id, url))
		self._replace(target_id, url=url, title=f'Title of {url}')

	async def go_back(self, target_id: str) -> None:
		self.calls.append(('go_back', target_id))

	async def go_forward(self, target_id: str) -> None:
		self.calls.append(('go_forward', target_id))

	async def evaluate(self, target_id: str, expression: str) -> str:
		self._target(target_id)
		self.calls.append(('evaluate', target_id, expression))
		if expression in self.evaluate_results:
			return self.evaluate_results[expression]
		if 'doHighlightElements' in expression:
			return self.snapshot
		return ''

	async def capture_screenshot(self, target_id: str, quality: int = 90) -> bytes:
		self.calls.append(('capture_screenshot', target_id, quality))
		return self.screenshot

	async def click(self, target_id: str, xpath: str) -> None:
		self.calls.append(('click', target_id, xpath))
		if self.on_click is not None:
			self.on_click(self, target_id, xpath)

	async def send_keys(self, target_id: str, xpath: str, text: str) -> None:
		self.calls.append(('send_keys', target_id, xpath, text))

	def calls_named(self, name: str) -> list[tuple[Any, ...]]:
		return [call for call in self.calls if call[0] == name]


@pytest.fixture
def fake_driver():
	return FakeDriver()


@pytest.fixture
def browser_profile():
	return BrowserProfile(cdp_url='http://127.0.0.1:9222', highlight_elements=True, viewport_expansion=0, debug_mode=False)


@pytest.fixture
async def browser_session(fake_driver, browser_profile):
	"""Started session on a FakeDriver with a single blank tab."""
	session = BrowserSession(driver=fake_driver, browser_profile=browser_profile)
	await session.start()
	yield session
	await session.stop()
