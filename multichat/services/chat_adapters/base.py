"""Base chat adapter interface and common functionality.

This module defines the normalized ``ChatEvent`` every adapter produces, the
normalization helper shared by all platforms, the adapter error hierarchy and
the base classes that platform-specific adapters build on.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

import aiohttp
from aiohttp import ClientSession, WSMsgType
from pydantic import BaseModel, Field

from multichat.utils.metrics import counter, gauge


logger = logging.getLogger(__name__)

DEFAULT_USERNAME = "Unknown"


class Platform(str, Enum):
    """Supported chat platforms."""

    TWITCH = "twitch"
    YOUTUBE = "youtube"
    KICK = "kick"
    JOYSTICK = "joystick"

    @property
    def label(self) -> str:
        """Human readable platform name used in log lines."""
        return {
            Platform.TWITCH: "Twitch",
            Platform.YOUTUBE: "YouTube",
            Platform.KICK: "Kick",
            Platform.JOYSTICK: "Joystick",
        }[self]


class AdapterState(str, Enum):
    """Connection lifecycle states of an adapter."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    SUBSCRIBED = "subscribed"
    HALTED = "halted"


def now_ms() -> int:
    """Current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


class ChatEvent(BaseModel):
    """A normalized chat message, identical in shape for every platform."""

    platform: Platform
    username: str = Field(min_length=1)
    message: str = Field(min_length=1)
    color: Optional[str] = None
    badges: List[str] = Field(default_factory=list)
    ts: int = Field(default_factory=now_ms)

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready payload delivered to overlay subscribers."""
        return self.model_dump(mode="json")


def normalize_chat_event(
    platform: Platform,
    username: Optional[str],
    text: Optional[str],
    color: Optional[str] = None,
    badges: Optional[Sequence[str]] = None,
    default_username: str = DEFAULT_USERNAME,
) -> Optional[ChatEvent]:
    """Map extracted platform fields onto a ``ChatEvent``.

    Returns None for payloads without message text. The timestamp is always
    assigned here; upstream timestamps are not trusted.
    """
    if not text or not text.strip():
        return None

    return ChatEvent(
        platform=platform,
        username=username or default_username,
        message=text,
        color=color or None,
        badges=[badge for badge in (badges or []) if badge],
        ts=now_ms(),
    )


class ChatAdapterError(Exception):
    """Base exception for chat adapter errors."""
    pass


class ChatConnectionError(ChatAdapterError):
    """Exception raised for connection-related errors."""
    pass


class ChatAuthenticationError(ChatAdapterError):
    """Exception raised when the platform rejects the current credentials."""
    pass


class ChatAuthorizationRevoked(ChatAuthenticationError):
    """Credentials were rejected in a way a token refresh cannot fix."""
    pass


EventCallback = Callable[[ChatEvent], Union[None, Awaitable[None]]]


class BaseChatAdapter(ABC):
    """Base class for all chat adapters.

    Holds the event sinks, the lifecycle state and the per-platform metrics.
    Each subclass owns its own session data and parsing rules.
    """

    platform: Platform

    def __init__(self, session: Optional[ClientSession] = None):
        """Initialize the chat adapter.

        Args:
            session: Optional shared aiohttp session
        """
        self._session = session
        self._session_owned = session is None

        self.state = AdapterState.DISCONNECTED
        self._callbacks: List[EventCallback] = []
        self._shutdown = False

        self._init_metrics()

    @property
    def session(self) -> ClientSession:
        """Get the HTTP session, creating one if necessary."""
        if self._session is None:
            self._session = ClientSession(timeout=aiohttp.ClientTimeout(total=30))
            self._session_owned = True
        return self._session

    def use_session(self, session: ClientSession) -> None:
        """Share an externally managed HTTP session."""
        self._session = session
        self._session_owned = False

    @property
    def log_prefix(self) -> str:
        return f"[{self.platform.label}]"

    @property
    def is_halted(self) -> bool:
        """True when the adapter refuses to reconnect until re-authorized."""
        return self.state == AdapterState.HALTED

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    @property
    def awaiting_authorization(self) -> bool:
        """True when the adapter cannot connect before the authorization flow runs."""
        return False

    def on_event(self, callback: EventCallback) -> None:
        """Register a sink that receives every normalized ChatEvent.

        Args:
            callback: Sync or async callable taking a ChatEvent
        """
        self._callbacks.append(callback)
        logger.debug(f"{self.log_prefix} Registered event callback")

    async def _emit(self, event: ChatEvent) -> None:
        """Deliver an event to every sink before further input is processed."""
        self._messages_received.increment()
        for callback in self._callbacks:
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"{self.log_prefix} Error in event callback: {e}")
                self._callback_errors.increment()

    def _set_state(self, state: AdapterState) -> None:
        if self.state != state:
            logger.debug(f"{self.log_prefix} State {self.state.value} -> {state.value}")
            self.state = state

    def resume(self) -> None:
        """Clear a halted state after out-of-band re-authorization."""
        if self.is_halted:
            self._set_state(AdapterState.DISCONNECTED)
        self._shutdown = False

    @abstractmethod
    async def run_once(self) -> None:
        """Run a single connection attempt until the transport is lost."""
        pass

    async def start(self) -> None:
        """Start the chat adapter.

        Runs one connection attempt; restarts are the supervisor's job.
        """
        await self.run_once()

    async def stop(self) -> None:
        """Stop the chat adapter."""
        logger.info(f"{self.log_prefix} Stopping chat adapter")
        self._shutdown = True
        if self._session_owned and self._session:
            await self._session.close()
            self._session = None

    def _init_metrics(self) -> None:
        """Initialize metrics for this adapter."""
        labels = {"platform": self.platform.value}

        self._connection_attempts = counter(
            "chat_adapter_connection_attempts_total", "Total connection attempts", labels
        )
        self._frames_received = counter(
            "chat_adapter_frames_received_total", "Total raw frames received", labels
        )
        self._messages_received = counter(
            "chat_adapter_messages_received_total", "Total normalized chat messages", labels
        )
        self._errors = counter(
            "chat_adapter_errors_total", "Total errors encountered", labels
        )
        self._callback_errors = counter(
            "chat_adapter_callback_errors_total", "Total callback errors", labels
        )
        self._connection_status = gauge(
            "chat_adapter_connection_status",
            "Current connection status (1=connected, 0=disconnected)",
            labels,
        )

    def __repr__(self) -> str:
        """String representation of the adapter."""
        return f"{self.__class__.__name__}(state='{self.state.value}')"


class WebSocketChatAdapter(BaseChatAdapter):
    """Connection lifecycle shared by the WebSocket based adapters.

    One call to ``run_once`` performs: prepare, connect, open handshake,
    receive loop, close. Subclasses fill in the protocol specific hooks.
    """

    websocket_protocols: Sequence[str] = ()

    def __init__(self, session: Optional[ClientSession] = None):
        super().__init__(session)
        self._websocket: Optional[aiohttp.ClientWebSocketResponse] = None

    @property
    @abstractmethod
    def websocket_url(self) -> str:
        """URL of the platform's chat WebSocket."""
        pass

    async def _prepare(self) -> bool:
        """Resolve whatever the connection needs. False skips this attempt."""
        return True

    @abstractmethod
    async def _on_open(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Send the login/subscribe frames after the transport opens."""
        pass

    @abstractmethod
    async def _handle_text(self, ws: aiohttp.ClientWebSocketResponse, data: str) -> None:
        """Handle one inbound text frame."""
        pass

    async def _on_close(self) -> None:
        """Release per-connection resources."""
        pass

    async def run_once(self) -> None:
        """Connect, process frames until the transport is lost, then return.

        Raises:
            ChatConnectionError: If the transport cannot be opened
            ChatAuthorizationRevoked: If the platform revoked the credentials
        """
        if self._shutdown or self.is_halted:
            return

        self._set_state(AdapterState.CONNECTING)
        if not await self._prepare():
            self._set_state(AdapterState.DISCONNECTED)
            return

        self._connection_attempts.increment()
        try:
            ws = await self.session.ws_connect(
                self.websocket_url, protocols=tuple(self.websocket_protocols)
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self._errors.increment(labels={"error_type": "connect_error"})
            self._set_state(AdapterState.DISCONNECTED)
            raise ChatConnectionError(f"Failed to connect to {self.platform.label}: {e}") from e

        self._websocket = ws
        self._connection_status.set(1)
        try:
            await self._on_open(ws)
            await self._receive_loop(ws)
        finally:
            await self._on_close()
            if not ws.closed:
                await ws.close()
            self._websocket = None
            self._connection_status.set(0)
            if not self.is_halted:
                self._set_state(AdapterState.DISCONNECTED)

        if self.is_halted:
            raise ChatAuthorizationRevoked(f"{self.platform.label} rejected the credentials")

    async def _receive_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Process frames one at a time until the socket closes."""
        while not self._shutdown and not ws.closed:
            msg = await ws.receive()

            if msg.type == WSMsgType.TEXT:
                self._frames_received.increment()
                try:
                    await self._handle_text(ws, msg.data)
                except Exception as e:
                    # Malformed frames never take the connection down
                    logger.debug(f"{self.log_prefix} Dropped unparseable frame: {e}")
                    self._errors.increment(labels={"error_type": "parse_error"})

            elif msg.type == WSMsgType.ERROR:
                logger.error(f"{self.log_prefix} WebSocket error: {ws.exception()}")
                self._errors.increment(labels={"error_type": "websocket_error"})
                break

            elif msg.type in (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED):
                logger.info(f"{self.log_prefix} WebSocket closed by server")
                break

    async def stop(self) -> None:
        """Stop the adapter and close the live transport, if any."""
        self._shutdown = True
        if self._websocket is not None and not self._websocket.closed:
            await self._websocket.close()
        await super().stop()
