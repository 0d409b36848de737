"""Main FastAPI application."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from structlog import get_logger

from ..core.config import Settings, get_settings
from ..core.logging import configure_logging
from ..services.multichat import MultiChatService
from .middleware.logging import LoggingMiddleware
from .routes import auth, health, overlay, status

logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings: Settings = app.state.settings

    # Startup
    if getattr(app.state, "service", None) is None:
        app.state.service = MultiChatService(settings)
    service: MultiChatService = app.state.service
    await service.start()
    logger.info(
        "multichat_started",
        port=settings.port,
        enabled=[name for name, enabled in service.overlay_status().items() if enabled],
    )

    yield

    # Shutdown
    await service.stop()
    logger.info("multichat_stopped")


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[MultiChatService] = None,
) -> FastAPI:
    """Create FastAPI application.

    Args:
        settings: Application settings; loaded from the environment when omitted
        service: Pre-built service, mainly for tests; built at startup when omitted
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Unified chat relay for Twitch, YouTube, Kick and Joystick overlays",
        version=settings.app_version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = service

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    # Routes
    app.include_router(health.router, tags=["health"])
    app.include_router(status.router, tags=["status"])
    app.include_router(overlay.router, tags=["overlay"])
    app.include_router(auth.router, tags=["auth"])

    return app


app = create_app()
