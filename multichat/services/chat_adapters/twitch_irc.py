"""Twitch chat over IRC-over-WebSocket.

This module provides the Twitch adapter that handles:
- Login with the OAuth token held by the Twitch credential store
- Joining the configured channel with tags and commands capabilities
- PING/PONG keepalive
- Parsing tagged PRIVMSG lines into normalized chat events
"""

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import aiohttp
from aiohttp import ClientSession

from .base import (
    AdapterState,
    ChatAuthenticationError,
    ChatEvent,
    Platform,
    WebSocketChatAdapter,
    normalize_chat_event,
)

if TYPE_CHECKING:
    from multichat.services.credentials import TwitchCredentialStore


logger = logging.getLogger(__name__)

ANONYMOUS_NICK = "justinfan12345"

PRIVMSG_PATTERN = re.compile(r"^@([^ ]+) :([^!]+)![^ ]+ PRIVMSG #\S+ :(.+)$")

AUTH_FAILURE_NOTICES = (
    "Login authentication failed",
    "Improperly formatted auth",
)


@dataclass
class ParsedChatLine:
    """Fields extracted from one tagged PRIVMSG line."""

    username: str
    message: str
    color: Optional[str] = None
    badges: List[str] = field(default_factory=list)


def parse_tags(tag_str: str) -> Dict[str, str]:
    """Parse an IRCv3 tag block (without the leading '@')."""
    tags: Dict[str, str] = {}
    for part in tag_str.split(";"):
        if not part:
            continue
        key, _, value = part.partition("=")
        tags[key] = value
    return tags


def parse_badges(badges: Optional[str]) -> List[str]:
    """Badge types from a ``badges`` tag, e.g. ``moderator/1,subscriber/12``."""
    if not badges:
        return []
    return [entry.split("/", 1)[0] for entry in badges.split(",") if entry]


def irc_command(line: str) -> Tuple[str, List[str]]:
    """Command and space separated parameters of a raw IRC line.

    Tags and the source prefix are skipped; a trailing parameter is not split.
    """
    if line.startswith("@"):
        line = line.partition(" ")[2]
    if line.startswith(":"):
        line = line.partition(" ")[2]
    head, _, trailing = line.partition(" :")
    parts = head.split()
    if not parts:
        return "", []
    params = parts[1:]
    if trailing:
        params.append(trailing)
    return parts[0].upper(), params


def parse_privmsg(line: str) -> Optional[ParsedChatLine]:
    """Parse a tagged PRIVMSG line.

    Example:
        @badges=moderator/1;color=#FF0000;display-name=Bob :bob!bob@bob.tmi.twitch.tv PRIVMSG #chan :hi

    Returns:
        ParsedChatLine, or None for anything that is not a chat line
    """
    match = PRIVMSG_PATTERN.match(line)
    if not match:
        return None

    tags = parse_tags(match.group(1))
    message = match.group(3).strip()
    if not message:
        return None

    return ParsedChatLine(
        username=tags.get("display-name") or match.group(2),
        message=message,
        color=tags.get("color") or None,
        badges=parse_badges(tags.get("badges")),
    )


class TwitchIRCAdapter(WebSocketChatAdapter):
    """Twitch IRC-over-WebSocket chat adapter."""

    platform = Platform.TWITCH

    def __init__(
        self,
        channel: str,
        credentials: "TwitchCredentialStore",
        session: Optional[ClientSession] = None,
        websocket_url: str = "wss://irc-ws.chat.twitch.tv:443",
    ):
        """Initialize the Twitch IRC adapter.

        Args:
            channel: Channel name to join (with or without '#')
            credentials: Store holding the user access token
            session: Optional aiohttp session
            websocket_url: Twitch IRC WebSocket URL
        """
        super().__init__(session)
        self.channel = channel.lower().replace("#", "")
        self.credentials = credentials
        self._websocket_url = websocket_url
        self._auth_notice_logged = False
        self.auth_failed = False

    @property
    def websocket_url(self) -> str:
        return self._websocket_url

    @property
    def awaiting_authorization(self) -> bool:
        return not self.credentials.has_token

    async def _prepare(self) -> bool:
        if not self.credentials.has_token:
            if not self._auth_notice_logged:
                logger.info(f"{self.log_prefix} No access token. Visit /twitch/auth to authorize.")
                self._auth_notice_logged = True
            return False

        self.auth_failed = False
        if not self.credentials.identity:
            self.credentials.set_identity(await self.credentials.fetch_identity())
        return True

    async def run_once(self) -> None:
        """Run one IRC session.

        Raises:
            ChatAuthenticationError: If Twitch rejected the access token
        """
        await super().run_once()
        if self.auth_failed:
            raise ChatAuthenticationError("Twitch rejected the access token")

    async def _on_open(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._set_state(AdapterState.AUTHENTICATING)
        nick = self.credentials.identity or ANONYMOUS_NICK

        await ws.send_str(f"PASS oauth:{self.credentials.access_token}")
        await ws.send_str(f"NICK {nick}")
        await ws.send_str("CAP REQ :twitch.tv/tags twitch.tv/commands")
        await ws.send_str(f"JOIN #{self.channel}")
        logger.info(f"{self.log_prefix} Connected to #{self.channel} as {nick}")

    async def _handle_text(self, ws: aiohttp.ClientWebSocketResponse, data: str) -> None:
        # One frame may carry several CRLF separated lines
        for line in data.split("\r\n"):
            if not line:
                continue
            try:
                await self._handle_line(ws, line)
            except Exception as e:
                logger.debug(f"{self.log_prefix} Skipped line {line!r}: {e}")
            if ws.closed:
                break

    async def _handle_line(self, ws: aiohttp.ClientWebSocketResponse, line: str) -> None:
        if line.startswith("PING"):
            await ws.send_str("PONG" + line[4:])
            return

        command, params = irc_command(line)
        text = params[-1] if params else ""

        if command == "NOTICE" and any(notice in text for notice in AUTH_FAILURE_NOTICES):
            logger.warning(f"{self.log_prefix} Auth failed, attempting token refresh...")
            self.auth_failed = True
            await ws.close()
            return

        if command == "RECONNECT":
            logger.info(f"{self.log_prefix} Server requested reconnect")
            await ws.close()
            return

        if self.state == AdapterState.AUTHENTICATING and self._is_join_ack(command, params):
            self._set_state(AdapterState.SUBSCRIBED)
            return

        event = self.parse_line(line)
        if event is not None:
            await self._emit(event)

    def _is_join_ack(self, command: str, params: List[str]) -> bool:
        if command == "ROOMSTATE":
            return True
        return command == "JOIN" and bool(params) and params[0].lower() == f"#{self.channel}"

    def parse_line(self, line: str) -> Optional[ChatEvent]:
        """Normalize a chat line, or return None when it is not one."""
        parsed = parse_privmsg(line)
        if parsed is None:
            return None
        return normalize_chat_event(
            Platform.TWITCH,
            parsed.username,
            parsed.message,
            color=parsed.color,
            badges=parsed.badges,
        )
