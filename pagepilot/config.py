"""Environment-backed configuration.

Values are read from the environment on every attribute access so tests and callers can
change `os.environ` at runtime. A `.env` file in the working directory is loaded once at
import time without overriding variables that are already set.
"""

import os
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
	value = os.getenv(name, default).strip().lower()
	return bool(value) and value[:1] in 'ty1'


class Config:
	"""Lazily evaluated settings, attribute names mirror the environment variables."""

	@property
	def PAGEPILOT_LOGGING_LEVEL(self) -> str:
		return os.getenv('PAGEPILOT_LOGGING_LEVEL', 'info').lower()

	@property
	def PAGEPILOT_SETUP_LOGGING(self) -> bool:
		return _env_bool('PAGEPILOT_SETUP_LOGGING', 'true')

	@property
	def PAGEPILOT_CDP_URL(self) -> str:
		return os.getenv('PAGEPILOT_CDP_URL', 'http://127.0.0.1:9222')

	@property
	def PAGEPILOT_HIGHLIGHT_ELEMENTS(self) -> bool:
		return _env_bool('PAGEPILOT_HIGHLIGHT_ELEMENTS', 'true')

	@property
	def PAGEPILOT_VIEWPORT_EXPANSION(self) -> int:
		return int(os.getenv('PAGEPILOT_VIEWPORT_EXPANSION', '0'))

	@property
	def PAGEPILOT_DEBUG_MODE(self) -> bool:
		return _env_bool('PAGEPILOT_DEBUG_MODE', 'false')

	@property
	def PAGEPILOT_DOM_SCRIPT_PATH(self) -> str | None:
		return os.getenv('PAGEPILOT_DOM_SCRIPT_PATH') or None

	def as_dict(self) -> dict[str, Any]:
		return {
			name: getattr(self, name) for name, value in vars(type(self)).items() if isinstance(value, property)
		}


CONFIG = Config()
