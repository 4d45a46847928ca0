import importlib.resources
import json
import logging
from functools import cache
from pathlib import Path
from typing import TYPE_CHECKING

from pagepilot.config import CONFIG
from pagepilot.dom.tree_builder import construct_dom_tree
from pagepilot.dom.views import DOMState

if TYPE_CHECKING:
	from pagepilot.browser.session import BrowserSession

logger = logging.getLogger(__name__)

REMOVE_HIGHLIGHTS_JS = """try {
	// Remove the highlight container and all its contents
	const container = document.getElementById('playwright-highlight-container');
	if (container) {
		container.remove();
	}

	// Remove highlight attributes from elements
	const highlightedElements = document.querySelectorAll('[browser-user-highlight-id^="playwright-highlight-"]');
	highlightedElements.forEach(el => {
		el.removeAttribute('browser-user-highlight-id');
	});
} catch (e) {
	console.error('Failed to remove highlights:', e);
}"""


@cache
def load_dom_script(script_path: str | None = None) -> str:
	"""Source of the in-page probe, the bundled one unless a path is given."""
	if script_path:
		return Path(script_path).read_text(encoding='utf-8')
	return importlib.resources.files('pagepilot.dom').joinpath('build_dom_tree.js').read_text(encoding='utf-8')


class DomService:
	"""Runs the in-page probe on the session's current tab and rebuilds its DOM state."""

	def __init__(self, browser_session: 'BrowserSession', script: str | None = None):
		self.browser_session = browser_session
		self._script = script

	@property
	def script(self) -> str:
		if self._script is None:
			self._script = load_dom_script(CONFIG.PAGEPILOT_DOM_SCRIPT_PATH)
		return self._script

	def build_probe_expression(self, focus_highlight_index: int = -1) -> str:
		profile = self.browser_session.browser_profile
		params = {
			'doHighlightElements': profile.highlight_elements,
			'focusHighlightIndex': focus_highlight_index,
			'viewportExpansion': profile.viewport_expansion,
			'debugMode': profile.debug_mode,
		}
		return f'({self.script})({json.dumps(params)})'

	async def add_highlights(self, focus_highlight_index: int = -1) -> str:
		"""Paint highlight overlays and return the raw snapshot JSON."""
		return await self.browser_session.execute_javascript(self.build_probe_expression(focus_highlight_index))

	async def remove_highlights(self) -> None:
		await self.browser_session.execute_javascript(REMOVE_HIGHLIGHTS_JS)

	async def get_clickable_elements(self, focus_highlight_index: int = -1) -> DOMState:
		raw_snapshot = await self.add_highlights(focus_highlight_index)
		dom_state = construct_dom_tree(raw_snapshot, self.browser_session.browser_profile.duplicate_index_policy)
		logger.debug(f'🌳 Built DOM tree with {len(dom_state.nodes)} nodes and {len(dom_state.selector_map)} interactive elements')
		return dom_state
