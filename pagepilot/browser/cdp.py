"""Chrome DevTools protocol driver over aiohttp.

Target management goes through the browser's HTTP endpoints (``/json/list``, ``/json/new``,
``/json/activate``, ``/json/close``). Page commands go over one WebSocket per target; the
connections are pooled on the driver and reused until the target is closed.
"""

import asyncio
import base64
import contextlib
import itertools
import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from pagepilot.browser.driver import TargetInfo
from pagepilot.browser.views import BrowserError, CDPError, TargetNotFoundError

logger = logging.getLogger(__name__)

_LOAD_POLL_INTERVAL = 0.25
_MAX_MESSAGE_SIZE = 50 * 1024 * 1024


class CDPConnection:
	"""One page target's DevTools WebSocket.

	Replies are matched to commands by id; protocol events (messages without an id) are
	dropped since the driver polls instead of subscribing. When the socket goes away every
	command still waiting for a reply fails with BrowserError.
	"""

	def __init__(self, ws_url: str, command_timeout: float = 30.0, http_session: aiohttp.ClientSession | None = None):
		self.ws_url = ws_url
		self.command_timeout = command_timeout
		self._http_session = http_session
		self._owns_http_session = http_session is None
		self._ws: aiohttp.ClientWebSocketResponse | None = None
		self._ids = itertools.count(1)
		self._waiting: dict[int, asyncio.Future[dict[str, Any]]] = {}
		self._reader: asyncio.Task[None] | None = None

	def __repr__(self) -> str:
		return f'CDPConnection({self.ws_url!r}, alive={self.is_alive}, waiting={len(self._waiting)})'

	@property
	def is_alive(self) -> bool:
		return self._ws is not None and not self._ws.closed and self._reader is not None and not self._reader.done()

	async def connect(self) -> None:
		if self._http_session is None:
			self._http_session = aiohttp.ClientSession()
		try:
			self._ws = await self._http_session.ws_connect(self.ws_url, max_msg_size=_MAX_MESSAGE_SIZE)
		except aiohttp.ClientError as e:
			raise BrowserError(f'Cannot open DevTools socket {self.ws_url}: {type(e).__name__}: {e}') from e
		self._reader = asyncio.create_task(self._dispatch_replies())

	async def close(self) -> None:
		if self._reader is not None and not self._reader.done():
			self._reader.cancel()
			with contextlib.suppress(asyncio.CancelledError):
				await self._reader
		if self._ws is not None:
			await self._ws.close()
		if self._owns_http_session and self._http_session is not None:
			await self._http_session.close()
		self._fail_waiting(f'CDP connection to {self.ws_url} closed')

	def _fail_waiting(self, reason: str) -> None:
		for future in self._waiting.values():
			if not future.done():
				future.set_exception(BrowserError(reason))
		self._waiting.clear()

	async def _dispatch_replies(self) -> None:
		assert self._ws is not None
		reason = f'CDP connection to {self.ws_url} was closed by the browser'
		try:
			async for msg in self._ws:
				if msg.type == aiohttp.WSMsgType.ERROR:
					reason = f'CDP connection to {self.ws_url} failed: {self._ws.exception()}'
					break
				if msg.type != aiohttp.WSMsgType.TEXT:
					continue
				reply = json.loads(msg.data)
				future = self._waiting.get(reply.get('id', -1))
				if future is not None and not future.done():
					future.set_result(reply)
		finally:
			self._fail_waiting(reason)
			logger.debug(f'🔌 Reply reader for {self.ws_url} stopped')

	async def send(self, method: str, params: dict[str, Any] | None = None, timeout: float | None = None) -> dict[str, Any]:
		"""Send one command and return its `result` object."""
		if not self.is_alive:
			raise BrowserError(f'CDP connection is closed, cannot send {method}')
		assert self._ws is not None

		command_id = next(self._ids)
		future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
		self._waiting[command_id] = future
		try:
			await self._ws.send_json({'id': command_id, 'method': method, 'params': params or {}})
			reply = await asyncio.wait_for(future, timeout=timeout or self.command_timeout)
		finally:
			self._waiting.pop(command_id, None)

		if 'error' in reply:
			error = reply['error']
			raise CDPError(f'CDP error for {method}: {error.get("message", error)} (code {error.get("code")})')
		return reply.get('result', {})

	async def __aenter__(self) -> 'CDPConnection':
		await self.connect()
		return self

	async def __aexit__(self, *args: object) -> None:
		await self.close()


def _xpath_expression(xpath: str, body: str) -> str:
	"""Wrap `body` in a function that receives the element located by `xpath` as `el`."""
	if not xpath.startswith('/'):
		xpath = '/' + xpath
	return f"""
		(() => {{
			const el = document.evaluate({json.dumps(xpath)}, document, null, XPathResult.FIRST_ORDERED_NODE_TYPE, null).singleNodeValue;
			if (!el) return null;
			{body}
		}})()
	"""


class CDPDriver:
	"""`BrowserDriver` for an already running Chromium exposing its DevTools endpoint."""

	def __init__(self, cdp_url: str = 'http://127.0.0.1:9222', navigation_timeout: float = 10.0, command_timeout: float = 30.0):
		self.cdp_url = cdp_url.rstrip('/')
		self.navigation_timeout = navigation_timeout
		self.command_timeout = command_timeout
		self._http_session: aiohttp.ClientSession | None = None
		self._pool: dict[str, CDPConnection] = {}
		self._pool_lock = asyncio.Lock()

	def __repr__(self) -> str:
		return f'CDPDriver(cdp_url={self.cdp_url!r}, connections={len(self._pool)})'

	# ── HTTP endpoints ───────────────────────────────────────────────────────

	async def _get_http_session(self) -> aiohttp.ClientSession:
		if self._http_session is None or self._http_session.closed:
			self._http_session = aiohttp.ClientSession()
		return self._http_session

	async def _http_json(self, method: str, path: str) -> Any:
		session = await self._get_http_session()
		url = f'{self.cdp_url}{path}'
		try:
			async with session.request(method, url) as resp:
				body = await resp.text()
				if resp.status == 404:
					raise TargetNotFoundError(f'{method} {path} returned 404: {body.strip()}')
				if resp.status >= 400:
					raise BrowserError(f'{method} {path} failed with HTTP {resp.status}: {body.strip()}')
		except aiohttp.ClientError as e:
			raise BrowserError(f'Cannot reach browser at {self.cdp_url}: {type(e).__name__}: {e}') from e

		try:
			return json.loads(body)
		except json.JSONDecodeError:
			# activate/close answer with plain text
			return body

	async def connect(self) -> None:
		version = await self._http_json('GET', '/json/version')
		browser = version.get('Browser', 'unknown browser') if isinstance(version, dict) else 'unknown browser'
		logger.info(f'🔌 Connected to {browser} at {self.cdp_url}')

	async def close(self) -> None:
		async with self._pool_lock:
			connections = list(self._pool.values())
			self._pool.clear()
		for cdp in connections:
			await cdp.close()
		if self._http_session is not None and not self._http_session.closed:
			await self._http_session.close()
		self._http_session = None

	async def _list_raw_targets(self) -> list[dict[str, Any]]:
		targets = await self._http_json('GET', '/json/list')
		if not isinstance(targets, list):
			raise BrowserError(f'Unexpected /json/list response: {targets!r}')
		return targets

	async def get_targets(self) -> list[TargetInfo]:
		return [
			TargetInfo(
				target_id=target['id'],
				target_type=target.get('type', 'page'),
				url=target.get('url', ''),
				title=target.get('title', ''),
			)
			for target in await self._list_raw_targets()
			if target.get('type') == 'page'
		]

	async def create_target(self, url: str = 'about:blank') -> str:
		target = await self._http_json('PUT', f'/json/new?{quote(url, safe=":/?&=%#")}')
		if not isinstance(target, dict) or 'id' not in target:
			raise BrowserError(f'Unexpected /json/new response: {target!r}')
		logger.debug(f'Created target {target["id"]} for {url}')
		return target['id']

	async def activate_target(self, target_id: str) -> None:
		await self._http_json('GET', f'/json/activate/{target_id}')

	async def close_target(self, target_id: str) -> None:
		async with self._pool_lock:
			cdp = self._pool.pop(target_id, None)
		if cdp is not None:
			await cdp.close()
		await self._http_json('GET', f'/json/close/{target_id}')

	# ── Page commands ────────────────────────────────────────────────────────

	async def _get_connection(self, target_id: str) -> CDPConnection:
		"""Get a pooled CDP connection for a target, creating one if needed."""
		async with self._pool_lock:
			cdp = self._pool.get(target_id)
			if cdp is not None:
				if cdp.is_alive:
					return cdp
				logger.debug(f'Evicting dead CDP connection for {target_id}')
				await cdp.close()
				del self._pool[target_id]

			ws_url = None
			for target in await self._list_raw_targets():
				if target.get('id') == target_id:
					ws_url = target.get('webSocketDebuggerUrl')
					break
			if not ws_url:
				raise TargetNotFoundError(f'Target {target_id} not found in CDP targets')

			cdp = CDPConnection(ws_url, command_timeout=self.command_timeout, http_session=await self._get_http_session())
			await cdp.connect()
			self._pool[target_id] = cdp
			logger.debug(f'Created new pooled CDP connection for {target_id}')
			return cdp

	async def _wait_for_load(self, cdp: CDPConnection) -> None:
		"""Wait for page load by polling readyState."""

		async def poll() -> None:
			while True:
				result = await cdp.send('Runtime.evaluate', {'expression': 'document.readyState', 'returnByValue': True})
				if result.get('result', {}).get('value') == 'complete':
					return
				await asyncio.sleep(_LOAD_POLL_INTERVAL)

		try:
			await asyncio.wait_for(poll(), timeout=self.navigation_timeout)
		except asyncio.TimeoutError:
			logger.warning(f'⚠️ Page did not finish loading within {self.navigation_timeout}s')

	async def navigate(self, target_id: str, url: str) -> None:
		cdp = await self._get_connection(target_id)
		await cdp.send('Page.enable')
		result = await cdp.send('Page.navigate', {'url': url})
		if result.get('errorText'):
			raise BrowserError(f'Navigation to {url} failed: {result["errorText"]}')
		await self._wait_for_load(cdp)

	async def _go_history(self, target_id: str, offset: int) -> None:
		cdp = await self._get_connection(target_id)
		history = await cdp.send('Page.getNavigationHistory')
		index = history.get('currentIndex', 0) + offset
		entries = history.get('entries', [])
		if not 0 <= index < len(entries):
			logger.debug(f'No history entry at offset {offset} for {target_id}')
			return
		await cdp.send('Page.navigateToHistoryEntry', {'entryId': entries[index]['id']})
		await self._wait_for_load(cdp)

	async def go_back(self, target_id: str) -> None:
		await self._go_history(target_id, -1)

	async def go_forward(self, target_id: str) -> None:
		await self._go_history(target_id, 1)

	async def evaluate(self, target_id: str, expression: str) -> str:
		cdp = await self._get_connection(target_id)
		result = await cdp.send(
			'Runtime.evaluate',
			{'expression': expression, 'returnByValue': True, 'awaitPromise': True},
		)
		if 'exceptionDetails' in result:
			details = result['exceptionDetails']
			description = details.get('exception', {}).get('description') or details.get('text', 'unknown error')
			raise BrowserError(f'JavaScript evaluation failed: {description}')

		remote_object = result.get('result', {})
		if remote_object.get('type') == 'undefined':
			return ''
		return json.dumps(remote_object.get('value'))

	async def capture_screenshot(self, target_id: str, quality: int = 90) -> bytes:
		cdp = await self._get_connection(target_id)
		metrics = await cdp.send('Page.getLayoutMetrics')
		content = metrics.get('cssContentSize') or metrics.get('contentSize') or {}
		params: dict[str, Any] = {'format': 'jpeg', 'quality': quality, 'captureBeyondViewport': True}
		if content.get('width') and content.get('height'):
			params['clip'] = {'x': 0, 'y': 0, 'width': content['width'], 'height': content['height'], 'scale': 1}
		result = await cdp.send('Page.captureScreenshot', params)
		if 'data' not in result:
			raise BrowserError('Screenshot result missing data')
		return base64.b64decode(result['data'])

	async def click(self, target_id: str, xpath: str) -> None:
		cdp = await self._get_connection(target_id)
		result = await cdp.send(
			'Runtime.evaluate',
			{
				'expression': _xpath_expression(
					xpath,
					"""
					el.scrollIntoView({block: 'center', inline: 'center'});
					const rect = el.getBoundingClientRect();
					return { x: rect.x + rect.width / 2, y: rect.y + rect.height / 2 };
					""",
				),
				'returnByValue': True,
			},
		)
		pos = result.get('result', {}).get('value')
		if not pos:
			raise BrowserError(f'Element not found: {xpath}')

		x, y = pos['x'], pos['y']
		await cdp.send('Input.dispatchMouseEvent', {'type': 'mouseMoved', 'x': x, 'y': y})
		for event_type in ('mousePressed', 'mouseReleased'):
			await cdp.send(
				'Input.dispatchMouseEvent',
				{'type': event_type, 'x': x, 'y': y, 'button': 'left', 'clickCount': 1},
			)

	async def send_keys(self, target_id: str, xpath: str, text: str) -> None:
		cdp = await self._get_connection(target_id)
		result = await cdp.send(
			'Runtime.evaluate',
			{'expression': _xpath_expression(xpath, 'el.focus(); return true;'), 'returnByValue': True},
		)
		if not result.get('result', {}).get('value'):
			raise BrowserError(f'Element not found: {xpath}')

		for char in text:
			await cdp.send('Input.dispatchKeyEvent', {'type': 'keyDown', 'text': char, 'key': char})
			await cdp.send('Input.dispatchKeyEvent', {'type': 'keyUp', 'key': char})
