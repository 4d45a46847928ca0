from dataclasses import dataclass, field

from pydantic import BaseModel

from pagepilot.dom.views import DOMElementNode, DOMState, SelectorMap


class BrowserError(Exception):
	"""Base for failures of the browser session that an agent may want to recover from."""

	def __init__(self, message: str, long_term_memory: str | None = None):
		super().__init__(message)
		self.message = message
		self.long_term_memory = long_term_memory


class TargetNotFoundError(BrowserError):
	"""The remote browser reports no target with the requested id."""


class CDPError(BrowserError):
	"""The remote browser answered a protocol command with an error."""


class TabReconciliationError(BrowserError):
	"""An action changed the set of open tabs in a way the session cannot follow."""


class InvalidTabReference(BrowserError):
	"""A tab operation referenced a tab the session does not track."""


class ScriptResultMismatch(BrowserError):
	"""The script channel returned an unexpected value for a known expression."""


class StateNotInitialized(BrowserError):
	"""Browser state was read before the first refresh."""


class TabInfo(BaseModel):
	"""Represents information about a browser tab"""

	page_id: int
	target_id: str
	url: str
	title: str


@dataclass(frozen=True)
class BrowserState:
	"""Point-in-time view of the browser, replaced wholesale on every refresh."""

	dom_state: DOMState
	url: str
	title: str
	tabs: tuple[TabInfo, ...]
	current_tab: TabInfo
	screenshot: bytes | None = field(default=None, repr=False)
	pixels_above: int = 0
	pixels_below: int = 0

	@property
	def element_tree(self) -> DOMElementNode | None:
		return self.dom_state.element_tree

	@property
	def selector_map(self) -> SelectorMap:
		return self.dom_state.selector_map

	def llm_representation(self, include_attributes: list[str] | None = None) -> str:
		return self.dom_state.llm_representation(include_attributes)
