from pagepilot.browser.cdp import CDPDriver
from pagepilot.browser.driver import BrowserDriver, TargetInfo
from pagepilot.browser.profile import BrowserProfile
from pagepilot.browser.session import BrowserSession
from pagepilot.browser.tabs import TabHandle, TabManager
from pagepilot.browser.views import (
	BrowserError,
	BrowserState,
	CDPError,
	InvalidTabReference,
	ScriptResultMismatch,
	StateNotInitialized,
	TabInfo,
	TabReconciliationError,
	TargetNotFoundError,
)

__all__ = [
	'BrowserDriver',
	'BrowserError',
	'BrowserProfile',
	'BrowserSession',
	'BrowserState',
	'CDPDriver',
	'CDPError',
	'InvalidTabReference',
	'ScriptResultMismatch',
	'StateNotInitialized',
	'TabHandle',
	'TabInfo',
	'TabManager',
	'TabReconciliationError',
	'TargetInfo',
	'TargetNotFoundError',
]
