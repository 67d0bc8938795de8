"""Conversation message models shared by the orchestrator and the model clients."""

from collections.abc import Iterable, Iterator
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

Role = Literal["user", "model", "function"]


class FunctionCall(BaseModel):
    """A model's request to invoke a tool."""

    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    id: str | None = None  # Only set by providers that issue call ids

    class Config:
        extra = "ignore"


class FunctionResponse(BaseModel):
    """The result of a tool call handed back to the model."""

    name: str
    response: dict[str, Any]
    id: str | None = None

    class Config:
        extra = "ignore"


class MessagePart(BaseModel):
    """One part of a message. Exactly one of the fields is populated."""

    text: str | None = None
    function_call: FunctionCall | None = None
    function_response: FunctionResponse | None = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @model_validator(mode="after")
    def check_single_variant(self) -> "MessagePart":
        """Reject parts that mix or omit the variants."""
        populated = [
            value for value in (self.text, self.function_call, self.function_response) if value is not None
        ]
        if len(populated) != 1:
            raise ValueError("A message part must carry exactly one of text, functionCall or functionResponse")
        return self


class ConversationMessage(BaseModel):
    """A single contribution to the conversation."""

    role: Role
    parts: list[MessagePart]

    @classmethod
    def user_text(cls, text: str) -> "ConversationMessage":
        return cls(role="user", parts=[MessagePart(text=text)])

    @classmethod
    def model_text(cls, text: str) -> "ConversationMessage":
        return cls(role="model", parts=[MessagePart(text=text)])

    @classmethod
    def model_function_call(cls, call: FunctionCall) -> "ConversationMessage":
        return cls(role="model", parts=[MessagePart(function_call=call)])

    @classmethod
    def function_result(cls, call: FunctionCall, response: dict[str, Any]) -> "ConversationMessage":
        return cls(
            role="function",
            parts=[MessagePart(function_response=FunctionResponse(name=call.name, response=response, id=call.id))],
        )

    @property
    def function_call(self) -> FunctionCall | None:
        """First function call carried by this message, if any."""
        return next((part.function_call for part in self.parts if part.function_call), None)

    @property
    def function_response(self) -> FunctionResponse | None:
        """First function response carried by this message, if any."""
        return next((part.function_response for part in self.parts if part.function_response), None)

    @property
    def text(self) -> str:
        """Concatenated text parts."""
        return "".join(part.text for part in self.parts if part.text)


class HistoryInvariantError(ValueError):
    """Raised when a message would break the call/response pairing."""


class ConversationHistory:
    """Ordered, append-only log of the messages exchanged in a session.

    A ``function`` message is only accepted directly after a ``model`` message
    whose function call it answers (same tool name).
    """

    def __init__(self, messages: Iterable[ConversationMessage] = ()):
        self._messages: list[ConversationMessage] = []
        self.extend(messages)

    def append(self, message: ConversationMessage) -> None:
        pending = self._pending_call()

        if message.role == "function":
            response = message.function_response
            if pending is None:
                raise HistoryInvariantError("Function response without a preceding function call")
            if response is None or response.name != pending.name:
                raise HistoryInvariantError(
                    f"Function response {response.name if response else None!r} does not answer {pending.name!r}"
                )
        elif pending is not None:
            raise HistoryInvariantError(f"Function call {pending.name!r} has no response")

        self._messages.append(message)

    def extend(self, messages: Iterable[ConversationMessage]) -> None:
        for message in messages:
            self.append(message)

    def clear(self) -> None:
        self._messages.clear()

    def snapshot(self) -> tuple[ConversationMessage, ...]:
        """Immutable view of the current messages."""
        return tuple(self._messages)

    def _pending_call(self) -> FunctionCall | None:
        if not self._messages:
            return None
        last = self._messages[-1]
        return last.function_call if last.role == "model" else None

    def __iter__(self) -> Iterator[ConversationMessage]:
        return iter(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
