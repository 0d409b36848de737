"""Kick chat over the Pusher WebSocket protocol."""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp
import backoff
from aiohttp import ClientSession

from .base import (
    AdapterState,
    ChatEvent,
    Platform,
    WebSocketChatAdapter,
    normalize_chat_event,
)
from .models import KickChatMessage, PusherFrame


logger = logging.getLogger(__name__)

CHAT_MESSAGE_EVENT = "App\\Events\\ChatMessageEvent"

# Control frames that never produce chat events
CONTROL_EVENTS = {
    "pusher:connection_established",
    "pusher_internal:subscription_succeeded",
    "pusher:pong",
    "pusher:error",
}

CHATROOM_RETRY_SECONDS = 30.0
KEEPALIVE_INTERVAL_SECONDS = 30.0


class KickPusherAdapter(WebSocketChatAdapter):
    """Kick chatroom adapter speaking the Pusher protocol."""

    platform = Platform.KICK

    def __init__(
        self,
        channel_name: str,
        pusher_key: str,
        pusher_cluster: str = "us2",
        chatroom_id: Optional[str] = None,
        session: Optional[ClientSession] = None,
        api_base_url: str = "https://kick.com/api/v2",
        keepalive_interval: float = KEEPALIVE_INTERVAL_SECONDS,
        chatroom_retry_delay: float = CHATROOM_RETRY_SECONDS,
    ):
        """Initialize the Kick adapter.

        Args:
            channel_name: Kick channel slug
            pusher_key: Pusher application key used by Kick
            pusher_cluster: Pusher cluster name
            chatroom_id: Chatroom ID; looked up from the channel when absent
            session: Optional aiohttp session
            api_base_url: Kick public API base URL
            keepalive_interval: Seconds between client keep-alive pings
            chatroom_retry_delay: Seconds between failed chatroom lookups
        """
        super().__init__(session)
        self.channel_name = channel_name
        self.pusher_key = pusher_key
        self.pusher_cluster = pusher_cluster
        self.chatroom_id = str(chatroom_id) if chatroom_id else None
        self.api_base_url = api_base_url.rstrip("/")
        self.keepalive_interval = keepalive_interval
        self.chatroom_retry_delay = chatroom_retry_delay

        self._keepalive_task: Optional[asyncio.Task] = None

    @property
    def websocket_url(self) -> str:
        return (
            f"wss://ws-{self.pusher_cluster}.pusher.com/app/{self.pusher_key}"
            "?protocol=7&client=js&version=7.6.0&flash=false"
        )

    @property
    def channel(self) -> str:
        return f"chatrooms.{self.chatroom_id}.v2"

    @backoff.on_exception(backoff.expo, aiohttp.ClientError, max_tries=3)
    async def _get_channel(self) -> Dict[str, Any]:
        headers = {"Accept": "application/json", "User-Agent": "MultiChat/1.0"}
        async with self.session.get(
            f"{self.api_base_url}/channels/{self.channel_name}", headers=headers
        ) as response:
            return await response.json(content_type=None)

    async def fetch_chatroom_id(self) -> Optional[str]:
        """Look up the chatroom id of the configured channel."""
        try:
            data = await self._get_channel()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"{self.log_prefix} Failed to fetch chatroom ID: {e}")
            return None

        chatroom_id = ((data or {}).get("chatroom") or {}).get("id")
        if chatroom_id:
            logger.info(f"{self.log_prefix} Got chatroom ID: {chatroom_id}")
            return str(chatroom_id)
        return None

    async def _prepare(self) -> bool:
        # The chatroom id is kept once resolved; reconnects reuse it
        while self.chatroom_id is None:
            self.chatroom_id = await self.fetch_chatroom_id()
            if self.chatroom_id is None:
                logger.warning(
                    f"{self.log_prefix} Could not get chatroom ID, retrying in "
                    f"{self.chatroom_retry_delay:.0f}s"
                )
                await asyncio.sleep(self.chatroom_retry_delay)
                if self._shutdown:
                    return False
        return True

    async def _on_open(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        logger.info(f"{self.log_prefix} Pusher connected, joining chatroom {self.chatroom_id}")
        await ws.send_json({
            "event": "pusher:subscribe",
            "data": {"auth": "", "channel": self.channel},
        })
        self._keepalive_task = asyncio.create_task(self._keepalive_loop(ws))

    async def _on_close(self) -> None:
        if self._keepalive_task and not self._keepalive_task.done():
            self._keepalive_task.cancel()
            try:
                await self._keepalive_task
            except asyncio.CancelledError:
                pass
        self._keepalive_task = None

    async def _keepalive_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Send client pings regardless of server pings."""
        while not ws.closed:
            await asyncio.sleep(self.keepalive_interval)
            try:
                await ws.send_json({"event": "pusher:ping", "data": {}})
            except (aiohttp.ClientError, ConnectionResetError) as e:
                logger.debug(f"{self.log_prefix} Keep-alive ping failed: {e}")
                return

    async def _handle_text(self, ws: aiohttp.ClientWebSocketResponse, data: str) -> None:
        frame = PusherFrame.model_validate(json.loads(data))

        if frame.event == "pusher:ping":
            await ws.send_json({"event": "pusher:pong", "data": {}})
            return

        if frame.event == CHAT_MESSAGE_EVENT:
            event = self.parse_chat_message(frame.data)
            if event is not None:
                await self._emit(event)
            return

        if frame.event == "pusher_internal:subscription_succeeded":
            self._set_state(AdapterState.SUBSCRIBED)
            logger.info(f"{self.log_prefix} Subscribed to {frame.channel or self.channel}")
        elif frame.event == "pusher:error":
            logger.warning(f"{self.log_prefix} Pusher error: {frame.data}")
        elif frame.event not in CONTROL_EVENTS:
            logger.debug(f"{self.log_prefix} Ignoring event {frame.event}")

    def parse_chat_message(self, data: Any) -> Optional[ChatEvent]:
        """Normalize a chat message payload, decoding it first if it is a JSON string."""
        if isinstance(data, str):
            data = json.loads(data)
        message = KickChatMessage.model_validate(data or {})
        sender = message.sender

        return normalize_chat_event(
            Platform.KICK,
            sender.username or sender.slug,
            message.content,
            color=sender.identity.color,
            badges=[badge.type for badge in sender.identity.badges],
        )
