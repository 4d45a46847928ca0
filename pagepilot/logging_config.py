import logging
import sys

from pagepilot.config import CONFIG

THIRD_PARTY_LOGGERS = ('aiohttp', 'asyncio', 'bubus', 'websockets', 'urllib3')


class PagePilotFormatter(logging.Formatter):
	"""Shortens `pagepilot.browser.session` style logger names to their last component."""

	def format(self, record: logging.LogRecord) -> str:
		if isinstance(record.name, str) and record.name.startswith('pagepilot.'):
			record.name = record.name.rsplit('.', 1)[-1]
		return super().format(record)


def setup_logging(stream=None, log_level: str | None = None, force_setup: bool = False) -> logging.Logger:
	"""Attach a single stream handler to the `pagepilot` logger.

	Args:
		stream: Output stream, defaults to stderr
		log_level: Overrides PAGEPILOT_LOGGING_LEVEL (debug, info, warning, error)
		force_setup: Replace handlers that a previous call installed
	"""
	logger = logging.getLogger('pagepilot')
	if logger.handlers and not force_setup:
		return logger

	for handler in list(logger.handlers):
		logger.removeHandler(handler)

	level_name = (log_level or CONFIG.PAGEPILOT_LOGGING_LEVEL).upper()
	level = logging.getLevelName(level_name)
	if not isinstance(level, int):
		level = logging.INFO

	handler = logging.StreamHandler(stream or sys.stderr)
	handler.setFormatter(PagePilotFormatter('%(levelname)-8s [%(name)s] %(message)s'))
	logger.addHandler(handler)
	logger.setLevel(level)
	logger.propagate = False

	for name in THIRD_PARTY_LOGGERS:
		third_party = logging.getLogger(name)
		third_party.setLevel(logging.ERROR)
		third_party.propagate = False

	return logger
