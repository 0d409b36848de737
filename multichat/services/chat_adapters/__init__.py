"""Chat adapters for real-time chat ingestion.

This module provides adapters for the supported chat platforms, each
normalizing its own wire protocol into ``ChatEvent``:
- Twitch IRC over WebSocket
- YouTube Live Chat API (polling-based)
- Kick (Pusher WebSocket)
- Joystick (ActionCable WebSocket)
"""

from .base import (
    AdapterState,
    BaseChatAdapter,
    ChatAdapterError,
    ChatAuthenticationError,
    ChatAuthorizationRevoked,
    ChatConnectionError,
    ChatEvent,
    Platform,
    normalize_chat_event,
)
from .dedup import DedupWindow
from .joystick import JoystickCableAdapter
from .kick import KickPusherAdapter
from .twitch_irc import TwitchIRCAdapter
from .youtube import YouTubeChatAdapter

__all__ = [
    "AdapterState",
    "BaseChatAdapter",
    "ChatAdapterError",
    "ChatAuthenticationError",
    "ChatAuthorizationRevoked",
    "ChatConnectionError",
    "ChatEvent",
    "DedupWindow",
    "JoystickCableAdapter",
    "KickPusherAdapter",
    "Platform",
    "TwitchIRCAdapter",
    "YouTubeChatAdapter",
    "normalize_chat_event",
]
