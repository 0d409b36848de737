"""Reconnection supervision for the WebSocket chat adapters.

Each supervised adapter is restarted after its transport closes, after a
fixed delay taken from a per-platform policy table. Adapters backed by OAuth
credentials get a token refresh attempt before every restart; a successful
refresh shortens the delay.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from multichat.services.chat_adapters.base import (
    ChatAdapterError,
    ChatAuthenticationError,
    ChatAuthorizationRevoked,
    Platform,
    WebSocketChatAdapter,
)
from multichat.services.credentials import CredentialStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconnectPolicy:
    """Fixed reconnect delays in seconds."""

    refreshed_delay: float
    default_delay: float

    def delay(self, refreshed: bool) -> float:
        return self.refreshed_delay if refreshed else self.default_delay


RECONNECT_POLICIES: Dict[Platform, ReconnectPolicy] = {
    Platform.TWITCH: ReconnectPolicy(refreshed_delay=1.0, default_delay=10.0),
    Platform.JOYSTICK: ReconnectPolicy(refreshed_delay=1.0, default_delay=10.0),
    Platform.KICK: ReconnectPolicy(refreshed_delay=5.0, default_delay=5.0),
}


class ReconnectionSupervisor:
    """Keeps one adapter instance connected for the life of the process."""

    def __init__(
        self,
        adapter: WebSocketChatAdapter,
        policy: Optional[ReconnectPolicy] = None,
        credentials: Optional[CredentialStore] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the supervisor.

        Args:
            adapter: The adapter to keep running
            policy: Reconnect delays; defaults to the adapter platform's entry
            credentials: Store to refresh before each restart, if any
            sleep: Coroutine used to wait between attempts
        """
        self.adapter = adapter
        self.policy = policy or RECONNECT_POLICIES[adapter.platform]
        self.credentials = credentials
        self._sleep = sleep
        self.restarts = 0

    @property
    def log_prefix(self) -> str:
        return f"[{self.adapter.platform.label}]"

    async def run(self) -> None:
        """Run the adapter, restarting it whenever its connection is lost.

        Returns only on shutdown, when the adapter halts on revoked
        credentials, or when it has no credentials to connect with.
        """
        while not self.adapter.is_shutdown:
            try:
                await self.adapter.run_once()
            except ChatAuthorizationRevoked as e:
                logger.error(f"{self.log_prefix} {e}; adapter halted until re-authorized")
                return
            except ChatAuthenticationError as e:
                logger.warning(f"{self.log_prefix} {e}")
            except ChatAdapterError as e:
                logger.error(f"{self.log_prefix} {e}")
            except Exception as e:
                logger.error(f"{self.log_prefix} Unexpected adapter failure: {e}", exc_info=True)

            if self.adapter.is_shutdown:
                return
            if self.adapter.is_halted:
                logger.error(f"{self.log_prefix} Adapter halted until re-authorized")
                return
            if self.adapter.awaiting_authorization:
                return

            refreshed = False
            if self.credentials is not None:
                logger.info(f"{self.log_prefix} Disconnected, attempting reconnect...")
                refreshed = await self.credentials.refresh()

            delay = self.policy.delay(refreshed)
            logger.info(f"{self.log_prefix} Disconnected, reconnecting in {delay:g}s")
            self.restarts += 1
            await self._sleep(delay)
