"""Gemini API client implementing the model capability."""

import asyncio
import os
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from google import genai
from google.genai import errors, types

from calendar_assistant.clients.base import ModelRateLimiter
from calendar_assistant.models.llm import FunctionCallingMode, LLMUsage, ModelResponse
from calendar_assistant.models.messages import ConversationMessage, FunctionCall, MessagePart
from calendar_assistant.tools.base import ToolDescriptor
from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SCHEMA_TYPES = {
    "object": types.Type.OBJECT,
    "string": types.Type.STRING,
    "integer": types.Type.INTEGER,
    "number": types.Type.NUMBER,
    "boolean": types.Type.BOOLEAN,
}


@dataclass
class GeminiConfig:
    """Configuration for the Gemini client."""

    model: str = "gemini-2.0-flash-001"
    temperature: float = 0.1
    max_output_tokens: int = 1000
    max_retries: int = 3
    retry_delay: float = 1.0


def to_gemini_tool(tools: Sequence[ToolDescriptor]) -> types.Tool:
    """Bundle tool descriptors into one Gemini tool of function declarations."""
    declarations = []
    for tool in tools:
        schema = tool.parameter_schema()
        declarations.append(
            types.FunctionDeclaration(
                name=tool.name,
                description=tool.description,
                parameters=types.Schema(
                    type=types.Type.OBJECT,
                    properties={
                        name: types.Schema(type=SCHEMA_TYPES[prop["type"]], description=prop["description"])
                        for name, prop in schema["properties"].items()
                    },
                    required=schema["required"],
                ),
            )
        )
    return types.Tool(function_declarations=declarations)


def _to_gemini_part(part: MessagePart) -> types.Part:
    if part.function_call is not None:
        call = part.function_call
        return types.Part(function_call=types.FunctionCall(id=call.id, name=call.name, args=call.args))
    if part.function_response is not None:
        result = part.function_response
        return types.Part(
            function_response=types.FunctionResponse(id=result.id, name=result.name, response=result.response)
        )
    return types.Part(text=part.text)


def to_gemini_contents(history: Sequence[ConversationMessage]) -> list[types.Content]:
    """Map the conversation onto Gemini contents.

    Function results travel with the ``user`` role on the wire.
    """
    return [
        types.Content(
            role="user" if message.role == "function" else message.role,
            parts=[_to_gemini_part(part) for part in message.parts],
        )
        for message in history
    ]


class GeminiModelClient:
    """Model capability backed by Gemini's generateContent endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        config: GeminiConfig | None = None,
        client: genai.Client | None = None,
        rate_limiter: ModelRateLimiter | None = None,
    ):
        """Initialize the Gemini client.

        Args:
            api_key: Gemini API key (defaults to GOOGLE_API_KEY env var)
            config: Client configuration
            client: Preconfigured genai client, mostly for tests
            rate_limiter: Shared limiter, a private one is created otherwise
        """
        self.config = config or GeminiConfig()
        self.rate_limiter = rate_limiter or ModelRateLimiter()

        if client is None:
            gemini_api_key = api_key or os.getenv("GOOGLE_API_KEY")
            if not gemini_api_key:
                raise ValueError("GOOGLE_API_KEY environment variable is required")
            client = genai.Client(api_key=gemini_api_key)

        self.client = client

    async def generate(
        self,
        history: Sequence[ConversationMessage],
        tools: Sequence[ToolDescriptor],
        mode: FunctionCallingMode = "AUTO",
        system_prompt: str | None = None,
    ) -> ModelResponse:
        contents = to_gemini_contents(history)
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=self.config.temperature,
            max_output_tokens=self.config.max_output_tokens,
            tools=[to_gemini_tool(tools)] if tools else None,
            tool_config=types.ToolConfig(function_calling_config=types.FunctionCallingConfig(mode=mode))
            if tools
            else None,
        )

        estimated_tokens = sum(len(message.model_dump_json()) for message in history) // 4
        await self.rate_limiter.check_rate_limit(estimated_tokens, "gemini")

        logger.debug(f"Calling {self.config.model} with {len(contents)} contents and {len(tools)} tools")
        response = await self._request_with_retries(
            lambda: self.client.aio.models.generate_content(
                model=self.config.model,
                contents=contents,
                config=config,
            )
        )

        return self._convert_response(response)

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute a Gemini request, retrying rate limits and server errors."""
        for attempt in range(self.config.max_retries):
            try:
                return await call()

            except errors.APIError as e:
                retryable = e.code == 429 or (e.code is not None and e.code >= 500)
                if retryable and attempt < self.config.max_retries - 1:
                    delay = self.config.retry_delay * (2**attempt)
                    logger.warning(f"Gemini API error {e.code}, retrying in {delay:.1f}s")
                    await asyncio.sleep(delay)
                    continue
                raise

        raise RuntimeError(f"Failed to complete request after {self.config.max_retries} attempts")

    def _convert_response(self, response: types.GenerateContentResponse) -> ModelResponse:
        """Convert a Gemini response to the provider-agnostic shape."""
        calls: list[FunctionCall] = []
        texts: list[str] = []

        candidates = response.candidates or []
        content = candidates[0].content if candidates else None
        for part in (content.parts if content and content.parts else []):
            if part.function_call is not None and part.function_call.name:
                calls.append(
                    FunctionCall(
                        id=part.function_call.id,
                        name=part.function_call.name,
                        args=dict(part.function_call.args or {}),
                    )
                )
            elif part.text and not part.thought:
                texts.append(part.text)

        usage = None
        if response.usage_metadata:
            metadata = response.usage_metadata
            usage = LLMUsage(
                input_tokens=metadata.prompt_token_count or 0,
                output_tokens=metadata.candidates_token_count or 0,
                total_tokens=metadata.total_token_count or 0,
                cache_read_input_tokens=metadata.cached_content_token_count or 0,
            )

        logger.debug(f"Gemini response: {len(texts)} text parts, {len(calls)} function calls")
        return ModelResponse(
            text="".join(texts) or None,
            function_calls=calls,
            usage=usage,
            model=response.model_version or self.config.model,
            provider="gemini",
        )
