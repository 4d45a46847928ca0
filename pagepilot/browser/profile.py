from pydantic import BaseModel, ConfigDict, Field

from pagepilot.config import CONFIG
from pagepilot.dom.views import DuplicateIndexPolicy


class BrowserProfile(BaseModel):
	"""Per-session settings. Defaults come from the environment (see `pagepilot.config`)."""

	model_config = ConfigDict(extra='forbid', validate_assignment=True, use_enum_values=True)

	cdp_url: str = Field(default_factory=lambda: CONFIG.PAGEPILOT_CDP_URL, description='DevTools HTTP endpoint')
	highlight_elements: bool = Field(default_factory=lambda: CONFIG.PAGEPILOT_HIGHLIGHT_ELEMENTS)
	viewport_expansion: int = Field(
		default_factory=lambda: CONFIG.PAGEPILOT_VIEWPORT_EXPANSION,
		description='Pixels around the viewport still considered visible, -1 for the whole page',
	)
	debug_mode: bool = Field(default_factory=lambda: CONFIG.PAGEPILOT_DEBUG_MODE)
	screenshot_quality: int = Field(default=90, ge=0, le=100)
	navigation_timeout: float = Field(default=10.0, gt=0)
	verify_script_channel: bool = Field(
		default=True, description='Evaluate 1+1 before every script and fail if the answer is not 2'
	)
	duplicate_index_policy: DuplicateIndexPolicy = DuplicateIndexPolicy.OVERWRITE
	strict_tab_switch: bool = Field(default=False, description='Raise instead of ignoring out-of-range tab switches')
	adopt_existing_tab: bool = Field(default=True, description='Use an already open page as the first tab on start')

	def __str__(self) -> str:
		return f'BrowserProfile(cdp_url={self.cdp_url})'
