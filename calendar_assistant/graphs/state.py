"""State definitions for the per-turn LangGraph flow."""

from enum import StrEnum

from pydantic import BaseModel, Field

from calendar_assistant.models.llm import LLMUsage, ModelResponse
from calendar_assistant.models.messages import ConversationMessage, FunctionCall


class TurnPhase(StrEnum):
    """Where the orchestrator is within a turn."""

    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOL = "executing_tool"
    AWAITING_FINAL_MODEL = "awaiting_final_model"


class TurnState(BaseModel):
    """Working state of a single turn.

    ``messages`` starts as the committed history plus the new user message;
    nodes return extended copies and the orchestrator commits the final list
    only when the turn succeeds.
    """

    messages: list[ConversationMessage]
    system_prompt: str | None = None

    # Latest model answer
    response: ModelResponse | None = None

    # Tool call executed this turn, if any
    function_call: FunctionCall | None = None

    final_text: str | None = None
    usage: LLMUsage = Field(default_factory=LLMUsage)

    class Config:
        arbitrary_types_allowed = True
