"""Signed-in session state."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from calendar_assistant.clients.google_auth import IdentityProvider
from calendar_assistant.services.conversation import ConversationOrchestrator
from calendar_assistant.services.date_resolver import DateTimeResolver
from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AssistantSession:
    """One signed-in user and the conversation bound to their token."""

    session_id: str
    access_token: str
    identity: IdentityProvider
    orchestrator: ConversationOrchestrator
    resolver: DateTimeResolver
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = field(default_factory=lambda: datetime.now(UTC))

    def as_dict(self) -> dict[str, Any]:
        """Return the session as a dictionary (without the token)."""
        return {
            "session_id": self.session_id,
            "timezone": self.resolver.timezone_name,
            "reference_date": self.resolver.today().date().isoformat(),
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
            "messages": len(self.orchestrator.history),
        }

    def update_activity(self) -> None:
        """Update the last activity timestamp."""
        self.last_activity = datetime.now(UTC)
