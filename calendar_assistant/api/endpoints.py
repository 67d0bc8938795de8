"""API endpoints for the calendar assistant."""

import json
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Request

from calendar_assistant import __version__
from calendar_assistant.clients.google_auth import IdentityError
from calendar_assistant.models.conversation import (
    ConversationRequest,
    ConversationResponse,
    HealthResponse,
    HistoryResponse,
    ResetResponse,
    SessionResponse,
    SignInRequest,
    SignOutResponse,
)
from calendar_assistant.models.session import AssistantSession
from calendar_assistant.services.conversation import TurnInProgressError
from calendar_assistant.services.session_manager import (
    InvalidTimezoneError,
    NotSignedInError,
    SessionManager,
    SessionNotFoundError,
)
from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def _require_session(manager: SessionManager, session_id: str | None = None) -> AssistantSession:
    try:
        return manager.get_session(session_id)
    except NotSignedInError as e:
        logger.warning("Request without an active session")
        raise HTTPException(status_code=401, detail="Not signed in") from e
    except SessionNotFoundError as e:
        logger.warning(f"Invalid session ID provided: {session_id}")
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/session", response_model=SessionResponse, tags=["Session"])
async def sign_in(
    request: SignInRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """Start a session with a Google access token."""
    try:
        session = await manager.sign_in(
            request.access_token, timezone=request.timezone, refresh_token=request.refresh_token
        )
    except IdentityError as e:
        logger.warning(f"Sign-in rejected: {e}")
        raise HTTPException(status_code=401, detail=str(e)) from e
    except InvalidTimezoneError as e:
        logger.warning(f"Sign-in rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e

    return SessionResponse(
        session_id=session.session_id,
        greeting=manager.greeting(),
        reference_date=session.resolver.today().date().isoformat(),
        timezone=session.resolver.timezone_name,
    )


@router.delete("/session", response_model=SignOutResponse, tags=["Session"])
async def sign_out(manager: SessionManager = Depends(get_session_manager)) -> SignOutResponse:
    """End the session and revoke its token."""
    _require_session(manager)
    try:
        await manager.sign_out()
    except IdentityError as e:
        logger.error(f"Sign-out completed but revocation failed: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail="Signed out, but the token could not be revoked") from e

    return SignOutResponse(status="signed_out")


@router.post("/conversation", response_model=ConversationResponse, tags=["Conversation"])
async def handle_conversation(
    request: ConversationRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> ConversationResponse:
    """Handle a conversation message and return the assistant's reply."""
    session = _require_session(manager, request.session_id)
    session_id = session.session_id

    try:
        logger.info(f"Processing message {request.message[:50]!r} for session {json.dumps(session.as_dict())}")
        response_text = await session.orchestrator.submit_user_turn(request.message)
    except TurnInProgressError as e:
        logger.warning(f"Rejected message for busy session {session_id}")
        raise HTTPException(status_code=409, detail="A previous message is still being processed") from e

    return ConversationResponse(response=response_text, session_id=session_id)


@router.get("/conversation/history", response_model=HistoryResponse, tags=["Conversation"])
async def get_history(
    session_id: str | None = None,
    manager: SessionManager = Depends(get_session_manager),
) -> HistoryResponse:
    """Return the conversation history."""
    session = _require_session(manager, session_id)
    messages = [message.model_dump(by_alias=True, exclude_none=True) for message in session.orchestrator.history]
    return HistoryResponse(session_id=session.session_id, messages=messages)


@router.post("/conversation/reset", response_model=ResetResponse, tags=["Conversation"])
async def reset_conversation(
    session_id: str | None = None,
    manager: SessionManager = Depends(get_session_manager),
) -> ResetResponse:
    """Clear the conversation history, keeping the session."""
    session = _require_session(manager, session_id)
    await session.orchestrator.reset_session()
    return ResetResponse(status="cleared", session_id=session.session_id)


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(manager: SessionManager = Depends(get_session_manager)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
        signed_in=manager.active_session is not None,
    )
