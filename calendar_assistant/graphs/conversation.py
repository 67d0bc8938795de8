"""Turn graph construction."""

from datetime import datetime

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from calendar_assistant.graphs.edges import make_model_router
from calendar_assistant.graphs.nodes import TurnNodes
from calendar_assistant.graphs.state import TurnState
from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)


def create_turn_graph(nodes: TurnNodes) -> CompiledStateGraph:
    """Create the graph that resolves one user turn.

    model -> respond, or model -> tool -> final_model -> respond. At most one
    tool runs per turn and the model is called at most twice.

    Args:
        nodes: Node implementations bound to the orchestrator's collaborators

    Returns:
        Compiled LangGraph workflow
    """
    workflow = StateGraph(TurnState)

    workflow.add_node("model", nodes.call_model)
    workflow.add_node("tool", nodes.execute_tool)
    workflow.add_node("final_model", nodes.call_final_model)
    workflow.add_node("respond", nodes.respond)

    workflow.set_entry_point("model")

    workflow.add_conditional_edges(
        "model",
        make_model_router(nodes.catalog),
        {
            "tool": "tool",
            "respond": "respond",
        },
    )
    workflow.add_edge("tool", "final_model")
    workflow.add_edge("final_model", "respond")
    workflow.add_edge("respond", END)

    compiled = workflow.compile()
    logger.debug("Turn graph compiled")
    return compiled


def get_system_prompt(today: datetime) -> str:
    """System instruction anchoring the model to the reference date."""
    return f"""You are a helpful calendar assistant with access to the user's Google Calendar.

Today is {today.strftime("%A, %B %d, %Y")} ({today.date().isoformat()}).

You can:
1. List the events of a given day with get_calendar_events
2. Create events with create_calendar_event

Guidelines:
- Pass dates and times through as the user said them ("tomorrow", "next week at 3pm") or in ISO format
- When creating an event without an end time, assume it lasts one hour
- Keep answers short; they may be read aloud"""
