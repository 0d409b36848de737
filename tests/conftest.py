"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from aiohttp import WSMessage, WSMsgType

from multichat.core.config import Settings
from multichat.utils.metrics import metrics_registry


class FakeWebSocket:
    """In-memory stand-in for ``aiohttp.ClientWebSocketResponse``.

    Frames queued with ``feed`` are returned by ``receive`` in order; once the
    queue is drained the socket reports CLOSED.
    """

    def __init__(self, frames: Optional[List[str]] = None):
        self.closed = False
        self.sent: List[Any] = []
        self._frames: List[str] = list(frames or [])

    def feed(self, *frames: str) -> None:
        self._frames.extend(frames)

    async def send_str(self, data: str) -> None:
        self.sent.append(data)

    async def send_json(self, data: Dict[str, Any]) -> None:
        self.sent.append(data)

    async def close(self) -> None:
        self.closed = True

    async def receive(self) -> WSMessage:
        if self.closed or not self._frames:
            self.closed = True
            return WSMessage(WSMsgType.CLOSED, None, None)
        return WSMessage(WSMsgType.TEXT, self._frames.pop(0), None)

    def exception(self) -> None:
        return None


@pytest.fixture(autouse=True)
def clean_metrics():
    """Start every test with an empty metrics registry."""
    metrics_registry.clear_all()
    yield
    metrics_registry.clear_all()


@pytest.fixture
def fake_ws() -> FakeWebSocket:
    return FakeWebSocket()


@pytest.fixture
def mock_session(fake_ws):
    """A mock aiohttp session whose ws_connect yields the fake socket."""
    session = MagicMock()
    session.ws_connect = AsyncMock(return_value=fake_ws)
    session.close = AsyncMock()
    return session


@pytest.fixture
def test_settings() -> Settings:
    """Settings with every platform configured, independent of any .env file."""
    return Settings(
        _env_file=None,
        environment="test",
        twitch_channel="#SomeChannel",
        twitch_client_id="twitch-client",
        twitch_client_secret="twitch-secret",
        youtube_api_key="yt-key",
        youtube_live_video_id="video123",
        kick_channel_name="somekicker",
        joystick_client_id="joy-client",
        joystick_client_secret="joy-secret",
        twitch_access_token=None,
        twitch_refresh_token=None,
        twitch_bot_username=None,
        joystick_access_token=None,
        joystick_refresh_token=None,
    )


@pytest.fixture
def empty_settings() -> Settings:
    """Settings with no platform configured."""
    return Settings(
        _env_file=None,
        environment="test",
        twitch_channel=None,
        twitch_client_id=None,
        twitch_client_secret=None,
        youtube_api_key=None,
        youtube_live_video_id=None,
        kick_channel_name=None,
        joystick_client_id=None,
        joystick_client_secret=None,
        twitch_access_token=None,
        joystick_access_token=None,
    )
