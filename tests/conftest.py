"""Shared fixtures and fakes for the test suite."""

import asyncio
from collections.abc import Sequence
from datetime import date
from typing import Any

import pytest

from calendar_assistant.clients.google_auth import IdentityError
from calendar_assistant.models.llm import LLMUsage, ModelResponse
from calendar_assistant.models.messages import ConversationMessage, FunctionCall
from calendar_assistant.services.calendar import CalendarGateway
from calendar_assistant.services.conversation import ConversationOrchestrator
from calendar_assistant.services.date_resolver import DateTimeResolver
from calendar_assistant.tools.base import ToolDescriptor

REFERENCE_DATE = date(2025, 6, 27)


def text_response(text: str | None) -> ModelResponse:
    return ModelResponse(text=text, usage=LLMUsage(input_tokens=10, output_tokens=5, total_tokens=15), model="fake")


def call_response(name: str, **args: Any) -> ModelResponse:
    return ModelResponse(function_calls=[FunctionCall(name=name, args=args)], model="fake")


class FakeModelClient:
    """Scripted model: returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses: ModelResponse | Exception):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []
        self.gate: asyncio.Event | None = None

    async def generate(
        self,
        history: Sequence[ConversationMessage],
        tools: Sequence[ToolDescriptor],
        mode: str = "AUTO",
        system_prompt: str | None = None,
    ) -> ModelResponse:
        self.calls.append(
            {"history": list(history), "tools": list(tools), "mode": mode, "system_prompt": system_prompt}
        )
        if self.gate is not None:
            await self.gate.wait()

        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeCalendar:
    """In-memory calendar capability recording every request."""

    def __init__(self, items: list[dict[str, Any]] | None = None, error: Exception | None = None):
        self.items = items or []
        self.error = error
        self.list_calls: list[dict[str, Any]] = []
        self.inserted: list[dict[str, Any]] = []

    async def list_events(
        self,
        calendar_id: str,
        time_min: str,
        time_max: str,
        show_deleted: bool = False,
        single_events: bool = True,
        order_by: str = "startTime",
    ) -> dict[str, Any]:
        self.list_calls.append(
            {
                "calendar_id": calendar_id,
                "time_min": time_min,
                "time_max": time_max,
                "show_deleted": show_deleted,
                "single_events": single_events,
                "order_by": order_by,
            }
        )
        if self.error:
            raise self.error
        return {"kind": "calendar#events", "items": self.items}

    async def insert_event(self, calendar_id: str, resource: dict[str, Any]) -> dict[str, Any]:
        if self.error:
            raise self.error
        self.inserted.append(resource)
        return {
            "id": f"evt{len(self.inserted)}",
            "status": "confirmed",
            "htmlLink": "https://calendar.google.com/event?eid=abc",
            **resource,
        }


class FakeIdentity:
    """Identity provider that records revocations."""

    def __init__(self, access_token: str, fail_revoke: bool = False):
        self.access_token = access_token
        self.fail_revoke = fail_revoke
        self.revoked: list[str] = []

    async def request_token(self) -> str:
        return self.access_token

    async def revoke(self, token: str) -> None:
        if self.fail_revoke:
            raise IdentityError("Token revocation failed (HTTP 400)")
        self.revoked.append(token)


@pytest.fixture
def resolver() -> DateTimeResolver:
    return DateTimeResolver("UTC", reference_date=REFERENCE_DATE)


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture
def gateway(calendar, resolver) -> CalendarGateway:
    return CalendarGateway(calendar, resolver)


@pytest.fixture
def make_orchestrator(gateway, resolver):
    """Build an orchestrator around a scripted model."""

    def build(*responses: ModelResponse | Exception) -> tuple[ConversationOrchestrator, FakeModelClient]:
        model = FakeModelClient(*responses)
        return ConversationOrchestrator(model, gateway, resolver), model

    return build
