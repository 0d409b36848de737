"""FastAPI dependency injection."""

from fastapi.requests import HTTPConnection

from ..core.config import Settings, get_settings
from ..services.event_hub import EventHub
from ..services.multichat import MultiChatService


def get_settings_dep(connection: HTTPConnection) -> Settings:
    """Get application settings."""
    return getattr(connection.app.state, "settings", None) or get_settings()


def get_service(connection: HTTPConnection) -> MultiChatService:
    """The running MultiChat service, attached to the app at startup."""
    return connection.app.state.service


def get_hub(connection: HTTPConnection) -> EventHub:
    return connection.app.state.service.hub
