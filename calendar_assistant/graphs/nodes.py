"""Node implementations for the turn graph."""

from collections.abc import Awaitable, Callable
from typing import Any

from calendar_assistant.clients.base import ModelClient
from calendar_assistant.graphs.state import TurnPhase, TurnState
from calendar_assistant.models.calendar import CreateEventResult, EventsResult
from calendar_assistant.models.llm import LLMUsage, ModelResponse
from calendar_assistant.models.messages import ConversationMessage, FunctionCall
from calendar_assistant.services.calendar import CalendarGateway
from calendar_assistant.services.date_resolver import DateTimeResolver
from calendar_assistant.tools import MissingRequiredFieldError, ToolCatalog
from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)

NO_RESPONSE_TEXT = "No response received"

ToolHandler = Callable[[CalendarGateway, dict[str, Any]], Awaitable[dict[str, Any]]]


async def _get_calendar_events(gateway: CalendarGateway, args: dict[str, Any]) -> dict[str, Any]:
    result = await gateway.list_events(args.get("date"))
    return result.to_response()


async def _create_calendar_event(gateway: CalendarGateway, args: dict[str, Any]) -> dict[str, Any]:
    result = await gateway.create_event(
        summary=args["summary"],
        start_date_time=args["startDateTime"],
        end_date_time=args["endDateTime"],
        description=args.get("description"),
    )
    return result.to_response()


TOOL_HANDLERS: dict[str, ToolHandler] = {
    "get_calendar_events": _get_calendar_events,
    "create_calendar_event": _create_calendar_event,
}

VALIDATION_ERRORS: dict[str, Callable[[str], dict[str, Any]]] = {
    "get_calendar_events": lambda message: EventsResult(error=message).to_response(),
    "create_calendar_event": lambda message: CreateEventResult(success=False, error=message).to_response(),
}


def normalize_arguments(name: str, args: dict[str, Any], resolver: DateTimeResolver) -> dict[str, Any]:
    """Resolve natural-language dates in tool arguments.

    ``date`` becomes ``YYYY-MM-DD``; ``startDateTime``/``endDateTime`` become ISO timestamps.
    The input mapping is left untouched.
    """
    normalized = dict(args)

    if name == "get_calendar_events" and normalized.get("date"):
        normalized["date"] = resolver.resolve_date(str(normalized["date"])).date().isoformat()

    elif name == "create_calendar_event":
        for key in ("startDateTime", "endDateTime"):
            if normalized.get(key):
                normalized[key] = resolver.resolve_datetime(str(normalized[key])).isoformat()

    return normalized


def _accumulate(usage: LLMUsage, response: ModelResponse) -> LLMUsage:
    total = LLMUsage(
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
        total_tokens=usage.total_tokens,
        cache_read_input_tokens=usage.cache_read_input_tokens,
    )
    total.add(response.usage)
    return total


class TurnNodes:
    """Graph nodes bound to one orchestrator's collaborators."""

    def __init__(
        self,
        model_client: ModelClient,
        gateway: CalendarGateway,
        resolver: DateTimeResolver,
        catalog: ToolCatalog,
        on_phase: Callable[[TurnPhase], None],
    ):
        self.model_client = model_client
        self.gateway = gateway
        self.resolver = resolver
        self.catalog = catalog
        self.on_phase = on_phase

    async def call_model(self, state: TurnState) -> dict[str, Any]:
        """Send the history to the model with the tools attached."""
        self.on_phase(TurnPhase.AWAITING_MODEL)

        response = await self.model_client.generate(
            state.messages,
            self.catalog.descriptors,
            mode="AUTO",
            system_prompt=state.system_prompt,
        )

        if len(response.function_calls) > 1:
            ignored = [call.name for call in response.function_calls[1:]]
            logger.warning(f"Model requested {len(response.function_calls)} tool calls, ignoring {ignored}")

        return {"response": response, "usage": _accumulate(state.usage, response)}

    async def execute_tool(self, state: TurnState) -> dict[str, Any]:
        """Run the first requested tool and record the call/response pair."""
        self.on_phase(TurnPhase.EXECUTING_TOOL)

        call: FunctionCall | None = state.response.first_function_call if state.response else None
        if call is None:
            raise ValueError("Tool step reached without a function call")
        args = normalize_arguments(call.name, call.args, self.resolver)
        logger.info(f"Executing tool {call.name} with {args}")

        try:
            self.catalog.validate(call.name, args)
        except MissingRequiredFieldError as e:
            logger.warning(f"Rejected tool call: {e}")
            result = VALIDATION_ERRORS[call.name](str(e))
        else:
            result = await TOOL_HANDLERS[call.name](self.gateway, args)

        messages = [
            *state.messages,
            ConversationMessage.model_function_call(call),
            ConversationMessage.function_result(call, result),
        ]
        return {"messages": messages, "function_call": call}

    async def call_final_model(self, state: TurnState) -> dict[str, Any]:
        """Ask the model to phrase the tool result for the user."""
        self.on_phase(TurnPhase.AWAITING_FINAL_MODEL)

        response = await self.model_client.generate(
            state.messages,
            self.catalog.descriptors,
            mode="AUTO",
            system_prompt=state.system_prompt,
        )

        if response.function_calls:
            logger.warning(f"Ignoring tool calls in final response: {[c.name for c in response.function_calls]}")

        return {"response": response, "usage": _accumulate(state.usage, response)}

    def respond(self, state: TurnState) -> dict[str, Any]:
        """Record the model's text answer, or the fallback when it gave none."""
        text = state.response.text if state.response else None
        if not text or not text.strip():
            text = NO_RESPONSE_TEXT

        return {
            "messages": [*state.messages, ConversationMessage.model_text(text)],
            "final_text": text,
        }
