import json
import logging
import urllib.parse
from typing import Any

from pydantic import BaseModel

from pagepilot.browser.session import BrowserSession
from pagepilot.browser.views import BrowserError
from pagepilot.tools.registry import Registry
from pagepilot.tools.views import (
	ActionResult,
	ClickElementAction,
	ExecJavascriptAction,
	GoToUrlAction,
	InputTextAction,
	NoParamsAction,
	OpenTabAction,
	SearchGoogleAction,
	SwitchTabAction,
	WaitAction,
)

logger = logging.getLogger(__name__)


def handle_browser_error(e: BrowserError) -> ActionResult:
	if e.long_term_memory is not None:
		return ActionResult(error=e.long_term_memory)
	return ActionResult(error=f'{type(e).__name__}: {e.message}')


class Tools:
	"""Builds the action registry for a browser agent and dispatches actions to a session."""

	def __init__(self, exclude_actions: list[str] | None = None):
		self.registry = Registry(exclude_actions if exclude_actions is not None else [])

		# Basic Navigation Actions
		@self.registry.action('Wait for x seconds default 3', param_model=WaitAction)
		async def wait(params: WaitAction, browser_session: BrowserSession):
			memory = f'Waited for {params.seconds} seconds'
			logger.info(f'🕒 waited for {params.seconds} second{"" if params.seconds == 1 else "s"}')
			await browser_session.wait(params.seconds)
			return ActionResult(extracted_content=memory, long_term_memory=memory)

		@self.registry.action(
			'Search the query in Google in the current tab, the query should be a search query like humans search in Google, '
			'concrete and not vague or super long. More the single most important items.',
			param_model=SearchGoogleAction,
		)
		async def search_google(params: SearchGoogleAction, browser_session: BrowserSession):
			search_url = f'https://www.google.com/search?q={urllib.parse.quote_plus(params.query)}&udm=14'
			await browser_session.navigate_to(search_url)
			memory = f"Searched Google for '{params.query}'"
			logger.info(f'🔍  {memory}')
			return ActionResult(extracted_content=memory, long_term_memory=memory)

		@self.registry.action('Navigate to URL in the current tab', param_model=GoToUrlAction)
		async def go_to_url(params: GoToUrlAction, browser_session: BrowserSession):
			await browser_session.navigate_to(params.url)
			memory = f'Navigated to {params.url}'
			return ActionResult(extracted_content=memory, long_term_memory=memory)

		@self.registry.action('Go back', param_model=NoParamsAction)
		async def go_back(_: NoParamsAction, browser_session: BrowserSession):
			await browser_session.go_back()
			memory = 'Navigated back'
			logger.info(f'🔙  {memory}')
			return ActionResult(extracted_content=memory)

		@self.registry.action('Go Forward', param_model=NoParamsAction)
		async def go_forward(_: NoParamsAction, browser_session: BrowserSession):
			await browser_session.go_forward()
			memory = 'Navigated forward'
			logger.info(f'🔜  {memory}')
			return ActionResult(extracted_content=memory)

		# Tab Management Actions
		@self.registry.action('Switch tab', param_model=SwitchTabAction)
		async def switch_tab(params: SwitchTabAction, browser_session: BrowserSession):
			handle = await browser_session.switch_tab(params.page_index)
			if handle is None:
				memory = f'Tab {params.page_index} does not exist, staying on the current tab'
				return ActionResult(extracted_content=memory, long_term_memory=memory)
			memory = f'Switched to tab #{handle.position}'
			logger.info(f'🔄  {memory}')
			return ActionResult(extracted_content=memory, long_term_memory=memory)

		@self.registry.action('Open url in new tab', param_model=OpenTabAction)
		async def open_tab(params: OpenTabAction, browser_session: BrowserSession):
			handle = await browser_session.open_tab(params.url)
			memory = f'Opened new tab #{handle.position} with {params.url}'
			return ActionResult(extracted_content=memory, long_term_memory=memory)

		# Element Interaction Actions
		@self.registry.action('Execute javascript in the current tab', param_model=ExecJavascriptAction)
		async def exec_javascript(params: ExecJavascriptAction, browser_session: BrowserSession):
			result = await browser_session.execute_javascript(params.content)
			return ActionResult(extracted_content=result, long_term_memory='Executed javascript')

		@self.registry.action('Click element by index', param_model=ClickElementAction)
		async def click_element(params: ClickElementAction, browser_session: BrowserSession):
			tabs_before = len(browser_session.tabs)
			element = await browser_session.click_element(params.index)
			memory = f'Clicked element {params.index} <{element.tag_name}>'
			if len(browser_session.tabs) > tabs_before:
				memory += ' - it opened a new tab, switched to it'
			logger.info(f'🖱️  {memory}')
			return ActionResult(extracted_content=memory, long_term_memory=memory, metadata={'xpath': element.xpath})

		@self.registry.action('Input text into an input interactive element', param_model=InputTextAction)
		async def input_text(params: InputTextAction, browser_session: BrowserSession):
			element = await browser_session.input_text(params.index, params.input)
			memory = f'Input {json.dumps(params.input)} into element {params.index} <{element.tag_name}>'
			logger.info(f'⌨️  {memory}')
			return ActionResult(extracted_content=memory, long_term_memory=memory, metadata={'xpath': element.xpath})

	def action(self, description: str, **kwargs):
		"""Decorator for registering custom actions

		@param description: Describe the LLM what the function does (better description == better function calling)
		"""
		return self.registry.action(description, **kwargs)

	def exclude_action(self, action_name: str) -> None:
		self.registry.exclude_action(action_name)

	async def act(
		self,
		action_name: str,
		params: dict[str, Any] | BaseModel | None,
		browser_session: BrowserSession,
	) -> ActionResult:
		"""Execute one action, holding the session's action lock until it fully completes."""
		async with browser_session.action_lock:
			try:
				result = await self.registry.execute_action(
					action_name=action_name,
					params=params if params is not None else {},
					browser_session=browser_session,
				)
			except BrowserError as e:
				logger.error(f'❌ Action {action_name} failed with {type(e).__name__}: {e}')
				result = handle_browser_error(e)
			except TimeoutError as e:
				logger.error(f'❌ Action {action_name} failed with TimeoutError: {e}')
				result = ActionResult(error=f'{action_name} was not executed due to timeout.')
			except Exception as e:
				logger.error(f"Action '{action_name}' failed with error: {e}")
				result = ActionResult(error=str(e))

		if isinstance(result, str):
			return ActionResult(extracted_content=result)
		elif isinstance(result, ActionResult):
			return result
		elif result is None:
			return ActionResult()
		else:
			raise ValueError(f'Invalid action result type: {type(result)} of {result}')

	def get_prompt_description(self) -> str:
		return self.registry.get_prompt_description()
