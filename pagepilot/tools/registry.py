"""Explicit action registry.

A `Registry` is an ordinary value: it is built once (see `pagepilot.tools.service.Tools`) and
handed to whatever dispatches actions. Registering the same name twice is an error.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from pagepilot.browser.session import BrowserSession
from pagepilot.tools.views import ActionResult

logger = logging.getLogger(__name__)

ActionFunction = Callable[..., Awaitable[ActionResult | str | None]]

# Parameters the registry injects instead of taking them from the action's params
SPECIAL_PARAM_NAMES = {'browser_session'}


class RegisteredAction(BaseModel):
	"""Model representing a registered action"""

	model_config = ConfigDict(arbitrary_types_allowed=True)

	name: str
	description: str
	function: Callable[..., Any]
	param_model: type[BaseModel]

	def prompt_description(self) -> str:
		"""Name, description and parameter schema, formatted for a planner prompt."""
		schema = self.param_model.model_json_schema(by_alias=True)
		properties = {
			name: {key: value for key, value in prop.items() if key != 'title'}
			for name, prop in schema.get('properties', {}).items()
		}
		return f'{self.name}: {self.description} {properties}'


class ActionRegistry(BaseModel):
	actions: dict[str, RegisteredAction] = {}


class Registry:
	def __init__(self, exclude_actions: list[str] | None = None):
		self.registry = ActionRegistry()
		self.exclude_actions = list(exclude_actions or [])

	def _create_param_model(self, function: Callable[..., Any]) -> type[BaseModel]:
		"""Build a parameter model from the function signature, skipping injected params."""
		fields: dict[str, Any] = {}
		for name, param in inspect.signature(function).parameters.items():
			if name in SPECIAL_PARAM_NAMES:
				continue
			annotation = param.annotation if param.annotation is not inspect.Parameter.empty else str
			default = param.default if param.default is not inspect.Parameter.empty else ...
			fields[name] = (annotation, default)
		return create_model(f'{function.__name__}_parameters', **fields)  # type: ignore[call-overload]

	def action(self, description: str, param_model: type[BaseModel] | None = None, name: str | None = None):
		"""Decorator for registering actions"""

		def decorator(func: ActionFunction) -> ActionFunction:
			action_name = name or func.__name__
			if action_name in self.exclude_actions:
				return func
			if action_name in self.registry.actions:
				raise ValueError(f'Action {action_name!r} is already registered')

			self.registry.actions[action_name] = RegisteredAction(
				name=action_name,
				description=description,
				function=func,
				param_model=param_model or self._create_param_model(func),
			)
			return func

		return decorator

	def exclude_action(self, action_name: str) -> None:
		if action_name not in self.exclude_actions:
			self.exclude_actions.append(action_name)
		self.registry.actions.pop(action_name, None)

	def get_action(self, action_name: str) -> RegisteredAction:
		action = self.registry.actions.get(action_name)
		if action is None:
			raise ValueError(f'Action {action_name!r} not found')
		return action

	async def execute_action(
		self,
		action_name: str,
		params: dict[str, Any] | BaseModel,
		browser_session: BrowserSession,
	) -> ActionResult | str | None:
		"""Validate `params` against the action's model and run it."""
		action = self.get_action(action_name)

		try:
			if isinstance(params, action.param_model):
				validated = params
			else:
				raw = params.model_dump(by_alias=True) if isinstance(params, BaseModel) else params
				validated = action.param_model.model_validate(raw)
		except ValidationError as e:
			raise ValueError(f'Invalid parameters for action {action_name!r}: {e}') from e

		signature = inspect.signature(action.function)
		kwargs: dict[str, Any] = {}
		if 'browser_session' in signature.parameters:
			kwargs['browser_session'] = browser_session

		first_param = next(iter(signature.parameters.values()), None)
		if first_param is not None and first_param.name not in SPECIAL_PARAM_NAMES and _takes_model(first_param, action.param_model):
			return await action.function(validated, **kwargs)
		return await action.function(**validated.model_dump(), **kwargs)

	def get_prompt_description(self) -> str:
		return '\n'.join(action.prompt_description() for action in self.registry.actions.values())


def _takes_model(param: inspect.Parameter, param_model: type[BaseModel]) -> bool:
	annotation = param.annotation
	return annotation is param_model or (inspect.isclass(annotation) and issubclass(annotation, BaseModel))
