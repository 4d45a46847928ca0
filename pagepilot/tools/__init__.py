from pagepilot.tools.registry import Registry
from pagepilot.tools.service import Tools
from pagepilot.tools.views import ActionResult

__all__ = ['ActionResult', 'Registry', 'Tools']
