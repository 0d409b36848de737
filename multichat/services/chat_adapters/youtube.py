"""YouTube Live Chat API integration adapter.

This module provides a YouTube Live Chat adapter that uses the YouTube Data API v3
to poll for live chat messages. Since YouTube doesn't support WebSocket for chat,
this implementation polls with pageToken pagination and handles:
- One-shot resolution of the live chat id from the broadcast's video id
- Continuation cursor tracking across polls
- De-duplication of messages delivered by overlapping pages
- Fixed retry delays for missing sessions, API errors and network failures

The adapter is not supervised; its own poll loop never exits on errors.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp
import backoff
from aiohttp import ClientSession

from multichat.utils.metrics import gauge

from .base import (
    AdapterState,
    BaseChatAdapter,
    ChatEvent,
    Platform,
    normalize_chat_event,
)
from .dedup import DedupWindow
from .models import YouTubeChatItem


logger = logging.getLogger(__name__)

MIN_POLL_INTERVAL_MS = 2000
SESSION_RETRY_SECONDS = 30.0
API_ERROR_RETRY_SECONDS = 30.0
FAILURE_RETRY_SECONDS = 10.0


def compute_poll_delay_ms(suggested_ms: Optional[int], default_ms: int = 5000) -> int:
    """Delay before the next poll: the server's suggestion, floored at 2 s.

    Args:
        suggested_ms: ``pollingIntervalMillis`` from the last response, if any
        default_ms: Interval used when the server gives no suggestion
    """
    interval = default_ms if suggested_ms is None else suggested_ms
    return max(int(interval), MIN_POLL_INTERVAL_MS)


@dataclass
class PollState:
    """Tracks the state of chat polling."""

    live_chat_id: Optional[str] = None
    next_page_token: Optional[str] = None
    polling_interval_ms: Optional[int] = None
    consecutive_errors: int = 0


class YouTubeChatAdapter(BaseChatAdapter):
    """YouTube Live Chat adapter using polling-based API."""

    platform = Platform.YOUTUBE

    def __init__(
        self,
        video_id: str,
        api_key: str,
        session: Optional[ClientSession] = None,
        api_base_url: str = "https://www.googleapis.com/youtube/v3",
        default_polling_interval_ms: int = 5000,
        dedup_capacity: int = 500,
    ):
        """Initialize the YouTube chat adapter.

        Args:
            video_id: The YouTube video ID of the live broadcast
            api_key: YouTube Data API key
            session: Optional aiohttp session
            api_base_url: YouTube API base URL
            default_polling_interval_ms: Interval used when the API suggests none
            dedup_capacity: Number of recent message ids remembered
        """
        super().__init__(session)
        self.video_id = video_id
        self.api_key = api_key
        self.api_base_url = api_base_url.rstrip("/")
        self.default_polling_interval_ms = default_polling_interval_ms

        self.poll_state = PollState()
        self.dedup = DedupWindow(dedup_capacity)

    @property
    def live_chat_id(self) -> Optional[str]:
        return self.poll_state.live_chat_id

    @backoff.on_exception(backoff.expo, aiohttp.ClientError, max_tries=3)
    async def _get_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {**params, "key": self.api_key}
        async with self.session.get(f"{self.api_base_url}/{path}", params=params) as response:
            return await response.json(content_type=None)

    async def _resolve_live_chat_id(self) -> Optional[str]:
        """Look up the active live chat of the configured video."""
        data = await self._get_json(
            "videos", {"part": "liveStreamingDetails", "id": self.video_id}
        )
        items = data.get("items") or []
        if not items:
            return None
        return (items[0].get("liveStreamingDetails") or {}).get("activeLiveChatId")

    async def _fetch_page(self) -> Dict[str, Any]:
        params = {
            "liveChatId": self.poll_state.live_chat_id,
            "part": "snippet,authorDetails",
        }
        if self.poll_state.next_page_token:
            params["pageToken"] = self.poll_state.next_page_token
        return await self._get_json("liveChat/messages", params)

    async def poll_once(self) -> float:
        """Run one poll cycle.

        Returns:
            float: Seconds to wait before the next cycle
        """
        try:
            if not self.poll_state.live_chat_id:
                self._set_state(AdapterState.CONNECTING)
                self._connection_attempts.increment()
                live_chat_id = await self._resolve_live_chat_id()
                if not live_chat_id:
                    logger.info(f"{self.log_prefix} No active live chat found, retrying in 30s...")
                    self._set_state(AdapterState.DISCONNECTED)
                    return SESSION_RETRY_SECONDS

                self.poll_state.live_chat_id = live_chat_id
                self._set_state(AdapterState.SUBSCRIBED)
                self._connection_status.set(1)
                logger.info(f"{self.log_prefix} Connected to live chat: {live_chat_id}")

            data = await self._fetch_page()

            if data.get("error"):
                error = data["error"]
                message = error.get("message") if isinstance(error, dict) else error
                errors = self._record_poll_error("api_error")
                logger.error(f"{self.log_prefix} API Error ({errors} in a row): {message}")
                return API_ERROR_RETRY_SECONDS

            if data.get("nextPageToken"):
                self.poll_state.next_page_token = data["nextPageToken"]
            self.poll_state.polling_interval_ms = data.get("pollingIntervalMillis")
            self._reset_poll_errors()

            await self._process_items(data.get("items") or [])

            return compute_poll_delay_ms(
                self.poll_state.polling_interval_ms, self.default_polling_interval_ms
            ) / 1000

        except Exception as e:
            errors = self._record_poll_error("poll_error")
            logger.error(f"{self.log_prefix} Error ({errors} in a row): {e}")
            return FAILURE_RETRY_SECONDS

    def _record_poll_error(self, error_type: str) -> int:
        self._errors.increment(labels={"error_type": error_type})
        self.poll_state.consecutive_errors += 1
        self._consecutive_errors.set(self.poll_state.consecutive_errors)
        return self.poll_state.consecutive_errors

    def _reset_poll_errors(self) -> None:
        if self.poll_state.consecutive_errors:
            logger.info(
                f"{self.log_prefix} Polling recovered after "
                f"{self.poll_state.consecutive_errors} failed attempts"
            )
        self.poll_state.consecutive_errors = 0
        self._consecutive_errors.set(0)

    def _init_metrics(self) -> None:
        super()._init_metrics()
        self._consecutive_errors = gauge(
            "chat_adapter_consecutive_poll_errors",
            "Failed polls since the last successful page",
            {"platform": self.platform.value},
        )

    async def _process_items(self, items: List[Dict[str, Any]]) -> None:
        """Deliver the unseen messages of one page, in page order."""
        for item in items:
            try:
                if not self.dedup.add(item.get("id")):
                    continue
                event = self.parse_item(item)
            except Exception as e:
                logger.debug(f"{self.log_prefix} Dropped unparseable item: {e}")
                self._errors.increment(labels={"error_type": "parse_error"})
                continue

            if event is not None:
                await self._emit(event)

    def parse_item(self, item: Dict[str, Any]) -> Optional[ChatEvent]:
        """Normalize a ``liveChatMessage`` resource."""
        message = YouTubeChatItem.model_validate(item)
        author = message.author_details

        badges = []
        if author.is_chat_owner:
            badges.append("owner")
        if author.is_chat_moderator:
            badges.append("moderator")
        if author.is_chat_sponsor:
            badges.append("member")

        return normalize_chat_event(
            Platform.YOUTUBE,
            author.display_name,
            message.snippet.display_message,
            color=None,
            badges=badges,
        )

    async def run_once(self) -> None:
        delay = await self.poll_once()
        await asyncio.sleep(delay)

    async def start(self) -> None:
        """Poll until stopped."""
        logger.info(f"{self.log_prefix} Starting chat polling for video {self.video_id}")
        while not self._shutdown:
            await self.run_once()
        self._set_state(AdapterState.DISCONNECTED)
        self._connection_status.set(0)
