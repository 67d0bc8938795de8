"""Request and response models for the HTTP API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator


class SignInRequest(BaseModel):
    """Request model for starting a session.

    Either a browser-issued ``access_token`` or a stored ``refresh_token``.
    """

    access_token: str | None = Field(default=None, min_length=1)
    refresh_token: str | None = Field(default=None, min_length=1)
    timezone: str | None = None

    @model_validator(mode="after")
    def check_token(self) -> "SignInRequest":
        if not self.access_token and not self.refresh_token:
            raise ValueError("access_token or refresh_token is required")
        return self


class SessionResponse(BaseModel):
    """Response model for a new session."""

    session_id: str
    greeting: str
    reference_date: str
    timezone: str


class SignOutResponse(BaseModel):
    status: str


class ConversationRequest(BaseModel):
    """Request model for conversation endpoint."""

    message: str = Field(..., max_length=4000)
    session_id: str | None = None


class ConversationResponse(BaseModel):
    """Response model for conversation endpoint.

    ``response`` is None when the message was blank and nothing was sent.
    """

    response: str | None
    session_id: str


class HistoryResponse(BaseModel):
    """Conversation history in the model's wire shape."""

    session_id: str
    messages: list[dict[str, Any]]


class ResetResponse(BaseModel):
    status: str
    session_id: str


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
    signed_in: bool
