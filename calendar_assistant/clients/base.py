"""Model capability interface shared by the LLM provider clients."""

import asyncio
import time
from collections.abc import Sequence
from typing import Protocol

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from calendar_assistant.models.llm import FunctionCallingMode, ModelResponse
from calendar_assistant.models.messages import ConversationMessage
from calendar_assistant.tools.base import ToolDescriptor
from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)


class ModelClient(Protocol):
    """Generates the next model turn from the conversation so far."""

    async def generate(
        self,
        history: Sequence[ConversationMessage],
        tools: Sequence[ToolDescriptor],
        mode: FunctionCallingMode = "AUTO",
        system_prompt: str | None = None,
    ) -> ModelResponse:
        """Ask the model for its next turn.

        Args:
            history: Ordered conversation, replayed in full
            tools: Tools the model may call
            mode: Function calling mode
            system_prompt: Optional system instruction

        Returns:
            Text answer and/or requested function calls
        """
        ...


class ModelRateLimiter:
    """Moving-window request and token limits for one provider."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        """Initialize the limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str) -> None:
        """Wait until a request of ``estimated_tokens`` fits in the limits."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_reset(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        if not self.limiter.hit(self.token_limit, token_identifier, cost=max(estimated_tokens, 1)):
            await self._wait_for_reset(self.token_limit, token_identifier, "Token")

    async def _wait_for_reset(self, limit, identifier: str, label: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        if window_stats:
            wait_time = max(0.0, window_stats.reset_time - time.time())
            if wait_time > 0:
                logger.warning(f"{label} rate limit exceeded, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)
