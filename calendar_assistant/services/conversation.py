"""Conversation orchestration: history, model round trips and tool dispatch."""

import asyncio
from collections.abc import Callable

from calendar_assistant.clients.base import ModelClient
from calendar_assistant.graphs.conversation import create_turn_graph, get_system_prompt
from calendar_assistant.graphs.nodes import TurnNodes
from calendar_assistant.graphs.state import TurnPhase
from calendar_assistant.models.messages import ConversationHistory, ConversationMessage
from calendar_assistant.services.calendar import CalendarGateway
from calendar_assistant.services.date_resolver import DateTimeResolver
from calendar_assistant.tools import ToolCatalog, default_catalog
from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)

ERROR_MESSAGE = "Sorry, I encountered an error. Please try again."

PhaseListener = Callable[[TurnPhase], None]


class TurnInProgressError(RuntimeError):
    """Raised when a turn is submitted while another one is running."""


class ConversationOrchestrator:
    """Owns one session's conversation and drives each user turn.

    A turn appends the user message, asks the model for a reply, runs at most
    one requested calendar tool, asks the model to summarize the result and
    appends the final answer. Turns are strictly sequential: a second turn is
    rejected while one is in flight.
    """

    def __init__(
        self,
        model_client: ModelClient,
        gateway: CalendarGateway,
        resolver: DateTimeResolver,
        catalog: ToolCatalog | None = None,
        system_prompt: str | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            model_client: Model capability
            gateway: Calendar gateway tools are dispatched to
            resolver: Date resolver for tool arguments and the system prompt
            catalog: Tools offered to the model (defaults to the calendar tools)
            system_prompt: Fixed system instruction; generated from the reference date when omitted
        """
        self.model_client = model_client
        self.gateway = gateway
        self.resolver = resolver
        self.catalog = catalog or default_catalog
        self.system_prompt = system_prompt

        self._history = ConversationHistory()
        self._phase = TurnPhase.IDLE
        self._listeners: list[PhaseListener] = []
        self._lock = asyncio.Lock()

        nodes = TurnNodes(model_client, gateway, resolver, self.catalog, on_phase=self._set_phase)
        self.graph = create_turn_graph(nodes)

    @property
    def history(self) -> tuple[ConversationMessage, ...]:
        return self._history.snapshot()

    @property
    def phase(self) -> TurnPhase:
        return self._phase

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    def add_listener(self, listener: PhaseListener) -> None:
        """Subscribe to phase transitions (e.g. to disable input while busy)."""
        self._listeners.append(listener)

    def remove_listener(self, listener: PhaseListener) -> None:
        self._listeners.remove(listener)

    def _set_phase(self, phase: TurnPhase) -> None:
        if phase == self._phase:
            return
        logger.debug(f"Turn phase {self._phase} -> {phase}")
        self._phase = phase
        for listener in list(self._listeners):
            try:
                listener(phase)
            except Exception as e:
                logger.error(f"Phase listener failed: {e}", exc_info=True)

    async def submit_user_turn(self, text: str) -> str | None:
        """Process one user message and return the assistant's reply.

        Args:
            text: User input, typed or transcribed

        Returns:
            The reply text, or None when the input was blank

        Raises:
            TurnInProgressError: If another turn has not finished yet
        """
        message = text.strip()
        if not message:
            logger.debug("Ignoring blank user input")
            return None

        if self._lock.locked():
            raise TurnInProgressError("A turn is already in progress")

        async with self._lock:
            self._history.append(ConversationMessage.user_text(message))
            self._set_phase(TurnPhase.AWAITING_MODEL)

            try:
                result = await self.graph.ainvoke(
                    {
                        "messages": list(self._history),
                        "system_prompt": self.system_prompt or get_system_prompt(self.resolver.today()),
                    },
                    {"recursion_limit": 10},
                )

                committed = len(self._history)
                turn_messages = [ConversationMessage.model_validate(m) for m in result["messages"]][committed:]
                self._history.extend(turn_messages)

                usage = result.get("usage")
                if usage is not None and usage.total_tokens:
                    logger.info(f"Token usage - Input: {usage.input_tokens}, Output: {usage.output_tokens}")

                reply: str = result["final_text"]
                logger.info(f"Turn completed with {len(turn_messages)} new messages: {reply[:50]}...")
                return reply

            except Exception as e:
                logger.error(f"Turn failed: {e}", exc_info=True)
                return ERROR_MESSAGE

            finally:
                self._set_phase(TurnPhase.IDLE)

    async def reset_session(self) -> None:
        """Clear the history, waiting for any in-flight turn to settle first."""
        async with self._lock:
            self._history.clear()
            logger.info("Conversation history cleared")
