"""LLM-related data models and types (provider-agnostic)."""

from dataclasses import dataclass, field
from typing import Literal

from calendar_assistant.models.messages import FunctionCall

FunctionCallingMode = Literal["AUTO", "ANY", "NONE"]


@dataclass
class LLMUsage:
    """Token usage information from the LLM provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    cache_read_input_tokens: int = 0

    def add(self, other: "LLMUsage | None") -> None:
        """Accumulate another response's usage into this one."""
        if other is None:
            return
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.total_tokens += other.total_tokens
        self.cache_read_input_tokens += other.cache_read_input_tokens


@dataclass
class ModelResponse:
    """Provider-agnostic answer to one generate call.

    Either ``text`` is an answer for the user, or ``function_calls`` lists the
    tools the model wants invoked (possibly alongside some text).
    """

    text: str | None = None
    function_calls: list[FunctionCall] = field(default_factory=list)
    usage: LLMUsage | None = None
    model: str = ""
    provider: str = ""

    @property
    def first_function_call(self) -> FunctionCall | None:
        return self.function_calls[0] if self.function_calls else None
