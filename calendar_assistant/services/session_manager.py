"""Single-user session management."""

from collections.abc import Callable
from zoneinfo import ZoneInfoNotFoundError

from cuid2 import cuid_wrapper

from calendar_assistant.clients.anthropic import AnthropicModelClient
from calendar_assistant.clients.base import ModelClient
from calendar_assistant.clients.gemini import GeminiModelClient
from calendar_assistant.clients.google_auth import (
    IdentityError,
    IdentityProvider,
    RefreshTokenProvider,
    StaticTokenProvider,
)
from calendar_assistant.clients.google_calendar import GoogleCalendarClient
from calendar_assistant.config import AppConfig, ModelProvider
from calendar_assistant.models.session import AssistantSession
from calendar_assistant.services.calendar import CalendarGateway
from calendar_assistant.services.conversation import ConversationOrchestrator
from calendar_assistant.services.date_resolver import DateTimeResolver
from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

OrchestratorFactory = Callable[[str, DateTimeResolver], ConversationOrchestrator]


class NotSignedInError(RuntimeError):
    """No user is signed in."""


class SessionNotFoundError(LookupError):
    """The given session id is not the active session."""


class InvalidTimezoneError(ValueError):
    """The time zone is not a known IANA key."""


def build_model_client(provider: ModelProvider) -> ModelClient:
    """Create the configured model client (API keys come from the environment)."""
    if provider == "anthropic":
        return AnthropicModelClient()
    return GeminiModelClient()


def default_orchestrator_factory(config: AppConfig) -> OrchestratorFactory:
    """Factory wiring the real Google Calendar and model clients."""
    model_client: ModelClient | None = None

    def create(access_token: str, resolver: DateTimeResolver) -> ConversationOrchestrator:
        nonlocal model_client
        if model_client is None:
            model_client = build_model_client(config.model_provider)

        gateway = CalendarGateway(GoogleCalendarClient(access_token), resolver)
        return ConversationOrchestrator(model_client, gateway, resolver)

    return create


def greeting(resolver: DateTimeResolver) -> str:
    today = resolver.today()
    return (
        f"I'm ready! Today is {today.strftime('%A, %B')} {today.day}, {today.year}. "
        "Ask me about your schedule or to create events. For example: "
        '"What do I have going on tomorrow?" or "Schedule a team meeting next Tuesday at 2pm."'
    )


class SessionManager:
    """Holds at most one signed-in session at a time."""

    def __init__(
        self,
        config: AppConfig | None = None,
        orchestrator_factory: OrchestratorFactory | None = None,
        identity_factory: Callable[[str], IdentityProvider] | None = None,
    ):
        """Initialize session manager.

        Args:
            config: Application configuration
            orchestrator_factory: Builds an orchestrator for a token and resolver
            identity_factory: Wraps a token in an identity provider
        """
        self.config = config or AppConfig()
        self.orchestrator_factory = orchestrator_factory or default_orchestrator_factory(self.config)
        self.identity_factory = identity_factory or StaticTokenProvider
        self._session: AssistantSession | None = None

    @property
    def active_session(self) -> AssistantSession | None:
        return self._session

    async def sign_in(
        self,
        access_token: str | None = None,
        timezone: str | None = None,
        refresh_token: str | None = None,
    ) -> AssistantSession:
        """Start a session for a freshly issued token.

        Any existing session is replaced and its history cleared.

        Args:
            access_token: OAuth access token with calendar scope
            timezone: IANA zone of the user, defaults to the configured one
            refresh_token: Stored refresh token, exchanged with the configured OAuth client

        Returns:
            The new session

        Raises:
            IdentityError: If no usable token was given or the refresh failed
            InvalidTimezoneError: If the time zone is unknown or malformed
        """
        zone = timezone or self.config.timezone
        try:
            resolver = DateTimeResolver(zone, reference_date=self.config.reference_date)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise InvalidTimezoneError(f"Unknown time zone: {zone}") from e

        identity = self._identity_for(access_token, refresh_token)
        token = await identity.request_token()

        if self._session is not None:
            logger.info(f"Replacing session {self._session.session_id}")
            await self._session.orchestrator.reset_session()
            self._session = None

        session = AssistantSession(
            session_id=self._generate_session_id(),
            access_token=token,
            identity=identity,
            orchestrator=self.orchestrator_factory(token, resolver),
            resolver=resolver,
        )
        self._session = session
        logger.info(f"Signed in, session {session.session_id} in {resolver.timezone_name}")
        return session

    def _identity_for(self, access_token: str | None, refresh_token: str | None) -> IdentityProvider:
        if refresh_token:
            if not (self.config.google_client_id and self.config.google_client_secret):
                raise IdentityError("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are required for refresh tokens")
            return RefreshTokenProvider(self.config.google_client_id, self.config.google_client_secret, refresh_token)
        return self.identity_factory(access_token or "")

    async def sign_out(self) -> None:
        """End the session: clear history, drop it and revoke the token.

        Raises:
            NotSignedInError: If nobody is signed in
            IdentityError: If revocation fails (the session is gone regardless)
        """
        session = self.get_session()
        await session.orchestrator.reset_session()
        self._session = None
        logger.info(f"Signed out of session {session.session_id}")

        await session.identity.revoke(session.access_token)

    def get_session(self, session_id: str | None = None) -> AssistantSession:
        """Return the active session, checking the id when one is given.

        Raises:
            NotSignedInError: If nobody is signed in
            SessionNotFoundError: If ``session_id`` does not match the active session
        """
        if self._session is None:
            raise NotSignedInError("Not signed in")

        if session_id is not None and session_id != self._session.session_id:
            raise SessionNotFoundError(f"Invalid session ID: {session_id}")

        self._session.update_activity()
        return self._session

    def greeting(self) -> str:
        return greeting(self.get_session().resolver)

    def _generate_session_id(self) -> str:
        """Generate a new CUID-based session ID."""
        return cuid()
