from pydantic import BaseModel, ConfigDict, Field


# Action Input Models
class WaitAction(BaseModel):
	seconds: int = Field(default=3, ge=0, description='Seconds to wait')


class SearchGoogleAction(BaseModel):
	query: str


class GoToUrlAction(BaseModel):
	url: str


class OpenTabAction(BaseModel):
	url: str


class SwitchTabAction(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	page_index: int = Field(alias='pageIndex', description='Tab position from the tab list, -1 for the newest tab')


class ExecJavascriptAction(BaseModel):
	content: str = Field(description='JavaScript expression to evaluate in the current tab')


class ClickElementAction(BaseModel):
	index: int = Field(ge=0, description='Element index from the browser state')


class InputTextAction(BaseModel):
	index: int = Field(ge=0, description='Element index from the browser state')
	input: str = Field(description='Text to type into the element')


class NoParamsAction(BaseModel):
	model_config = ConfigDict(extra='ignore')


class ActionResult(BaseModel):
	"""Result of executing an action"""

	is_done: bool = False

	# Error handling - always include in long term memory
	error: str | None = None

	# Always include in long term memory
	long_term_memory: str | None = None

	extracted_content: str | None = None

	# Metadata for observability (e.g. the element that was acted on)
	metadata: dict | None = None
