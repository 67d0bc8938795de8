"""Anthropic API client implementing the model capability."""

import asyncio
import json
import os
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

import tiktoken
from anthropic import APIError, APIStatusError, AsyncAnthropic
from pydantic import BaseModel

from calendar_assistant.clients.base import ModelRateLimiter
from calendar_assistant.models.llm import FunctionCallingMode, LLMUsage, ModelResponse
from calendar_assistant.models.messages import ConversationMessage, FunctionCall
from calendar_assistant.tools.base import ToolDescriptor
from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

TOOL_CHOICE: dict[str, dict[str, str]] = {
    "AUTO": {"type": "auto"},
    "ANY": {"type": "any"},
    "NONE": {"type": "none"},
}


class TextBlock(BaseModel):
    """Text content block."""

    type: Literal["text"] = "text"
    text: str

    class Config:
        extra = "ignore"


class ToolUseBlock(BaseModel):
    """Tool use content block."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]

    class Config:
        extra = "ignore"


class ToolResultBlock(BaseModel):
    """Tool result content block."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False

    class Config:
        extra = "ignore"


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock


class AnthropicMessage(BaseModel):
    """Message format for Anthropic API."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]

    def text_content(self) -> str:
        """All text carried by the message, for token estimation."""
        if isinstance(self.content, str):
            return self.content
        chunks = []
        for block in self.content:
            if isinstance(block, TextBlock):
                chunks.append(block.text)
            elif isinstance(block, ToolUseBlock):
                chunks.append(block.name + json.dumps(block.input))
            else:
                chunks.append(block.content)
        return "".join(chunks)

    def is_tool_result(self) -> bool:
        return isinstance(self.content, list) and any(isinstance(b, ToolResultBlock) for b in self.content)


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 1000
    temperature: float = 0.1
    max_retries: int = 3
    retry_delay: float = 1.0

    # Token limits for truncation
    max_conversation_tokens: int = 200000
    token_headroom: int = 2000  # Reserve tokens for response


def tool_use_id(call: FunctionCall, position: int) -> str:
    """Stable id for a call, synthesized from its history position when the provider gave none."""
    return call.id or f"toolu_history_{position:04d}"


def to_anthropic_messages(history: Sequence[ConversationMessage]) -> list[AnthropicMessage]:
    """Translate the conversation into Anthropic's user/assistant format.

    Function calls become ``tool_use`` blocks and function results become
    ``tool_result`` blocks on a user turn, linked by id.
    """
    messages: list[AnthropicMessage] = []
    pending_id: str | None = None

    for position, message in enumerate(history):
        call = message.function_call
        result = message.function_response

        if message.role == "model" and call is not None:
            pending_id = tool_use_id(call, position)
            messages.append(
                AnthropicMessage(
                    role="assistant",
                    content=[ToolUseBlock(id=pending_id, name=call.name, input=call.args)],
                )
            )
        elif message.role == "function" and result is not None:
            messages.append(
                AnthropicMessage(
                    role="user",
                    content=[
                        ToolResultBlock(
                            tool_use_id=result.id or pending_id or f"toolu_history_{position - 1:04d}",
                            content=json.dumps(result.response),
                            is_error="error" in result.response,
                        )
                    ],
                )
            )
            pending_id = None
        else:
            role = "assistant" if message.role == "model" else "user"
            messages.append(AnthropicMessage(role=role, content=message.text))

    return messages


def to_anthropic_tools(tools: Sequence[ToolDescriptor]) -> list[dict[str, Any]]:
    return [
        {"name": tool.name, "description": tool.description, "input_schema": tool.parameter_schema()}
        for tool in tools
    ]


class AnthropicModelClient:
    """Model capability backed by Anthropic's Messages API."""

    tokenizer: tiktoken.Encoding | None = None

    def __init__(
        self,
        api_key: str | None = None,
        config: AnthropicConfig | None = None,
        client: AsyncAnthropic | None = None,
        rate_limiter: ModelRateLimiter | None = None,
    ):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Client configuration
            client: Preconfigured SDK client, mostly for tests
            rate_limiter: Shared limiter, a private one is created otherwise
        """
        self.config = config or AnthropicConfig()
        self.rate_limiter = rate_limiter or ModelRateLimiter()

        if client is None:
            anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
            if not anthropic_api_key:
                raise ValueError("ANTHROPIC_API_KEY environment variable is required")
            client = AsyncAnthropic(api_key=anthropic_api_key)

        self.client = client

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    async def generate(
        self,
        history: Sequence[ConversationMessage],
        tools: Sequence[ToolDescriptor],
        mode: FunctionCallingMode = "AUTO",
        system_prompt: str | None = None,
    ) -> ModelResponse:
        anthropic_tools = to_anthropic_tools(tools)
        messages = self.truncate_conversation(to_anthropic_messages(history), system_prompt or "", anthropic_tools)

        estimated_tokens = self._estimate_tokens(messages, system_prompt or "")
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens, "anthropic")

        request_params: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [message.model_dump() for message in messages],
        }
        if system_prompt:
            request_params["system"] = system_prompt
        if anthropic_tools:
            request_params["tools"] = anthropic_tools
            request_params["tool_choice"] = TOOL_CHOICE[mode]

        logger.debug(f"Making Anthropic API call with model: {request_params['model']}")
        response = await self._request_with_retries(lambda: self.client.messages.create(**request_params))

        return self._convert_response(response)

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute Anthropic API request with retry logic."""
        for attempt in range(self.config.max_retries):
            try:
                return await call()

            except APIStatusError as e:
                if e.status_code == 429 and attempt < self.config.max_retries - 1:
                    retry_after = int(e.response.headers.get("retry-after", 60))
                    if retry_after < 120:
                        logger.warning(f"Rate limited by Anthropic, waiting {retry_after}s")
                        await asyncio.sleep(retry_after)
                        continue

                elif e.status_code >= 500 and attempt < self.config.max_retries - 1:
                    # Server error, retry with exponential backoff
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue

                raise

            except APIError:
                # Connection problems and timeouts
                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue
                raise

        raise RuntimeError(f"Failed to complete request after {self.config.max_retries} attempts")

    def _convert_response(self, response: Any) -> ModelResponse:
        """Convert an SDK message into the provider-agnostic response."""
        texts: list[str] = []
        calls: list[FunctionCall] = []

        for block in response.content:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                calls.append(FunctionCall(id=block.id, name=block.name, args=dict(block.input or {})))
            else:
                logger.warning(f"Unknown content block type: {block.type}")

        usage = None
        if response.usage:
            usage = LLMUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
                cache_read_input_tokens=getattr(response.usage, "cache_read_input_tokens", None) or 0,
            )

        logger.debug(f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}")

        return ModelResponse(
            text="".join(texts) or None,
            function_calls=calls,
            usage=usage,
            model=response.model,
            provider="anthropic",
        )

    def _estimate_tokens(self, messages: list[AnthropicMessage], system_prompt: str) -> int:
        text_content = system_prompt + "".join(message.text_content() for message in messages)
        return self.estimate_message_tokens(text_content)

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message.

        Args:
            message: Message content

        Returns:
            Estimated token count
        """
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4

    def truncate_conversation(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str,
        tools: list[dict[str, Any]] | None = None,
    ) -> list[AnthropicMessage]:
        """Truncate conversation from the beginning to fit within token limits.

        The kept window always starts on a plain user message, so a tool
        result is never separated from the tool call it answers.
        """
        if not messages:
            return messages

        available_tokens = self.config.max_conversation_tokens - self.config.token_headroom
        available_tokens -= self.estimate_message_tokens(system_prompt)
        if tools:
            available_tokens -= self.estimate_message_tokens(json.dumps(tools))

        truncated_messages: list[AnthropicMessage] = []
        current_tokens = 0

        for message in reversed(messages):
            message_tokens = self.estimate_message_tokens(message.text_content())
            if current_tokens + message_tokens > available_tokens:
                break
            truncated_messages.insert(0, message)
            current_tokens += message_tokens

        while truncated_messages and (truncated_messages[0].role != "user" or truncated_messages[0].is_tool_result()):
            truncated_messages.pop(0)

        if not truncated_messages:
            # Even the latest turn is too large; send it anyway and let the API decide
            starts = [i for i, m in enumerate(messages) if m.role == "user" and not m.is_tool_result()]
            truncated_messages = messages[starts[-1] :] if starts else [messages[-1]]

        if len(truncated_messages) < len(messages):
            logger.warning(
                f"Truncated conversation from {len(messages)} to {len(truncated_messages)} messages "
                f"to fit within {available_tokens} token limit"
            )

        return truncated_messages
