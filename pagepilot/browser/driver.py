"""Boundary to the remote browser.

Everything the session needs from the browser goes through `BrowserDriver`. Every call is
awaited until its remote effect is observed; callers needing deadlines wrap these calls.
"""

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict


class TargetInfo(BaseModel):
	"""Browser target (page, iframe, worker) as listed by the remote browser."""

	model_config = ConfigDict(frozen=True)

	target_id: str
	target_type: str = 'page'
	url: str = 'about:blank'
	title: str = ''


@runtime_checkable
class BrowserDriver(Protocol):
	async def connect(self) -> None: ...

	async def close(self) -> None: ...

	async def get_targets(self) -> list[TargetInfo]:
		"""Live page targets, in the order the browser reports them."""
		...

	async def create_target(self, url: str = 'about:blank') -> str:
		"""Open a new tab and return its target id."""
		...

	async def activate_target(self, target_id: str) -> None: ...

	async def close_target(self, target_id: str) -> None: ...

	async def navigate(self, target_id: str, url: str) -> None: ...

	async def go_back(self, target_id: str) -> None: ...

	async def go_forward(self, target_id: str) -> None: ...

	async def evaluate(self, target_id: str, expression: str) -> str:
		"""Evaluate `expression` and return the JSON text of its value ('' for undefined)."""
		...

	async def capture_screenshot(self, target_id: str, quality: int = 90) -> bytes: ...

	async def click(self, target_id: str, xpath: str) -> None: ...

	async def send_keys(self, target_id: str, xpath: str, text: str) -> None: ...
