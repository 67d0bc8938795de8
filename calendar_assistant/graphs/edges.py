"""Edge logic and routing for the turn graph."""

from collections.abc import Callable
from typing import Literal

from calendar_assistant.graphs.state import TurnState
from calendar_assistant.tools import ToolCatalog
from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)


def make_model_router(catalog: ToolCatalog) -> Callable[[TurnState], Literal["tool", "respond"]]:
    """Build the router that follows the first model call."""

    def route_model_output(state: TurnState) -> Literal["tool", "respond"]:
        """Route to tool execution when the model asked for a known tool.

        Unknown tool names are skipped without touching the history.
        """
        call = state.response.first_function_call if state.response else None
        if call is None:
            return "respond"

        if not catalog.has_tool(call.name):
            logger.warning(f"Unknown tool requested: {call.name}")
            return "respond"

        return "tool"

    return route_model_output
