"""Joystick chat over the ActionCable WebSocket protocol.

The adapter subscribes to the bot's ``GatewayChannel`` and normalizes
``ChatMessage``/``new_message`` frames. A rejected subscription means the
bot credentials are no longer accepted; the adapter then halts until the
authorization flow installs new tokens.
"""

import json
import logging
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import urlencode

import aiohttp
from aiohttp import ClientSession

from .base import (
    AdapterState,
    ChatEvent,
    Platform,
    WebSocketChatAdapter,
    normalize_chat_event,
)
from .models import CableFrame, JoystickChatMessage

if TYPE_CHECKING:
    from multichat.services.credentials import JoystickCredentialStore


logger = logging.getLogger(__name__)

GATEWAY_IDENTIFIER = json.dumps({"channel": "GatewayChannel"})


class JoystickCableAdapter(WebSocketChatAdapter):
    """Joystick gateway adapter speaking the ActionCable protocol."""

    platform = Platform.JOYSTICK
    websocket_protocols = ("actioncable-v1-json",)

    def __init__(
        self,
        credentials: "JoystickCredentialStore",
        session: Optional[ClientSession] = None,
        cable_url: str = "wss://joystick.tv/cable",
    ):
        """Initialize the Joystick adapter.

        Args:
            credentials: Store holding the bot tokens and client credentials
            session: Optional aiohttp session
            cable_url: ActionCable endpoint
        """
        super().__init__(session)
        self.credentials = credentials
        self.cable_url = cable_url
        self._auth_notice_logged = False

    @property
    def websocket_url(self) -> str:
        return f"{self.cable_url}?{urlencode({'token': self.credentials.basic_key})}"

    @property
    def awaiting_authorization(self) -> bool:
        return not self.credentials.has_token

    async def _prepare(self) -> bool:
        if not self.credentials.has_token:
            if not self._auth_notice_logged:
                logger.info(f"{self.log_prefix} No access token. Visit /joystick/auth to authorize.")
                self._auth_notice_logged = True
            return False
        return True

    async def _on_open(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        logger.info(f"{self.log_prefix} Connected, subscribing to GatewayChannel...")
        self._set_state(AdapterState.AUTHENTICATING)
        await ws.send_json({"command": "subscribe", "identifier": GATEWAY_IDENTIFIER})

    async def _halt(self, ws: aiohttp.ClientWebSocketResponse, reason: str) -> None:
        logger.error(
            f"{self.log_prefix} {reason}; re-authorization required at /joystick/auth"
        )
        self._set_state(AdapterState.HALTED)
        await ws.close()

    async def _handle_text(self, ws: aiohttp.ClientWebSocketResponse, data: str) -> None:
        frame = CableFrame.model_validate(json.loads(data))

        if frame.type in ("ping", "welcome"):
            return

        if frame.type == "confirm_subscription":
            self._set_state(AdapterState.SUBSCRIBED)
            logger.info(f"{self.log_prefix} Subscribed to GatewayChannel")
            return

        if frame.type == "reject_subscription":
            await self._halt(ws, "Subscription rejected")
            return

        if frame.type == "disconnect":
            if frame.reconnect is False:
                await self._halt(ws, f"Disconnected without reconnect ({frame.reason})")
            else:
                logger.info(f"{self.log_prefix} Server disconnect: {frame.reason}")
                await ws.close()
            return

        if not frame.message:
            return

        event = self.parse_message(frame.message)
        if event is not None:
            await self._emit(event)

    def parse_message(self, payload: Any) -> Optional[ChatEvent]:
        """Normalize a gateway message, or return None if it is not a chat message."""
        if not isinstance(payload, dict):
            return None
        message = JoystickChatMessage.model_validate(payload)
        if message.event != "ChatMessage" or message.type != "new_message":
            return None

        author = message.author
        badges = []
        if author.is_streamer:
            badges.append("streamer")
        if author.is_moderator:
            badges.append("moderator")
        if author.is_subscriber:
            badges.append("subscriber")

        return normalize_chat_event(
            Platform.JOYSTICK,
            author.username,
            message.text,
            color=author.username_color,
            badges=badges,
        )
