from pagepilot.config import CONFIG
from pagepilot.logging_config import setup_logging

# Embedding applications can opt out and configure the pagepilot logger themselves
if CONFIG.PAGEPILOT_SETUP_LOGGING:
	logger = setup_logging()
else:
	import logging

	logger = logging.getLogger('pagepilot')

from pagepilot.browser import BrowserProfile, BrowserSession, BrowserState, CDPDriver  # noqa: E402
from pagepilot.browser.views import BrowserError  # noqa: E402
from pagepilot.dom.views import DOMElementNode, DOMState, DuplicateIndexPolicy  # noqa: E402
from pagepilot.tools import ActionResult, Tools  # noqa: E402

__all__ = [
	'ActionResult',
	'BrowserError',
	'BrowserProfile',
	'BrowserSession',
	'BrowserState',
	'CDPDriver',
	'DOMElementNode',
	'DOMState',
	'DuplicateIndexPolicy',
	'Tools',
	'setup_logging',
]
