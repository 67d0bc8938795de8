"""Application configuration loaded from the environment."""

import os
from dataclasses import dataclass, field
from datetime import date
from typing import Literal

ModelProvider = Literal["gemini", "anthropic"]


@dataclass
class AppConfig:
    """Top-level settings for wiring the assistant together."""

    model_provider: ModelProvider = "gemini"
    timezone: str = "UTC"  # IANA name, used when the client does not send its own
    reference_date: date | None = None  # Fixed "today" anchor, None means the real clock
    google_client_id: str | None = None
    google_client_secret: str | None = None
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build configuration from environment variables."""
        provider = os.getenv("MODEL_PROVIDER", "gemini").lower()
        if provider not in ("gemini", "anthropic"):
            raise ValueError(f"Unsupported MODEL_PROVIDER: {provider}")

        reference = os.getenv("ASSISTANT_REFERENCE_DATE")
        origins = os.getenv("CORS_ORIGINS", "*")

        return cls(
            model_provider=provider,  # type: ignore[arg-type]
            timezone=os.getenv("ASSISTANT_TIMEZONE", "UTC"),
            reference_date=date.fromisoformat(reference) if reference else None,
            google_client_id=os.getenv("GOOGLE_CLIENT_ID") or None,
            google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET") or None,
            cors_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
