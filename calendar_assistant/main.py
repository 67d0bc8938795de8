"""Main FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from calendar_assistant import __version__
from calendar_assistant.api.endpoints import router
from calendar_assistant.config import AppConfig
from calendar_assistant.services.session_manager import SessionManager
from calendar_assistant.utils.logging import LogConfig, setup_logging


def create_app(config: AppConfig | None = None, session_manager: SessionManager | None = None) -> FastAPI:
    """Build the application.

    Args:
        config: Settings, read from the environment when omitted
        session_manager: Preconfigured manager, mostly for tests
    """
    config = config or AppConfig.from_env()
    setup_logging(LogConfig(level=config.log_level))

    app = FastAPI(
        title="Calendar Assistant",
        description=(
            "A conversational assistant that reads and creates Google Calendar events "
            "from natural-language requests."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "Session",
                "description": "Sign in with a Google access token and sign out again.",
            },
            {
                "name": "Conversation",
                "description": "Talk to the assistant. Requires an active session.",
            },
            {
                "name": "Health",
                "description": "Service health monitoring and status checks.",
            },
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.session_manager = session_manager or SessionManager(config)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("calendar_assistant.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
