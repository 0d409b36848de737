"""Wiring of adapters, credential stores, supervisors and the event hub.

``MultiChatService`` builds one adapter per configured platform, runs each in
its own task and routes every normalized event into the shared hub. It is
also the entry point for the authorization flow (``on_authorized``) and the
status query.
"""

import asyncio
import logging
from typing import Dict, Optional, Union

import aiohttp
from aiohttp import ClientSession

from multichat.core.config import Settings
from multichat.services.chat_adapters import (
    BaseChatAdapter,
    JoystickCableAdapter,
    KickPusherAdapter,
    Platform,
    TwitchIRCAdapter,
    YouTubeChatAdapter,
)
from multichat.services.credentials import (
    CredentialStore,
    JoystickCredentialStore,
    TwitchCredentialStore,
)
from multichat.services.event_hub import EventHub
from multichat.services.supervisor import ReconnectionSupervisor


logger = logging.getLogger(__name__)


class MultiChatService:
    """Runs every enabled platform adapter and feeds the event hub."""

    def __init__(
        self,
        settings: Settings,
        hub: Optional[EventHub] = None,
        session: Optional[ClientSession] = None,
    ):
        """Initialize the service.

        Args:
            settings: Application settings
            hub: Event hub; a new one is created when omitted
            session: Optional shared aiohttp session
        """
        self.settings = settings
        self.hub = hub or EventHub()
        if self.hub.status_provider is None:
            self.hub.status_provider = self.overlay_status

        self._session = session
        self._session_owned = session is None

        self.credentials: Dict[Platform, CredentialStore] = {
            Platform.TWITCH: TwitchCredentialStore(
                settings.twitch_client_id,
                settings.twitch_client_secret,
                auth_base_url=settings.twitch_auth_url,
                api_base_url=settings.twitch_api_base_url,
                access_token=settings.twitch_access_token,
                refresh_token=settings.twitch_refresh_token,
                identity=settings.twitch_bot_username,
            ),
            Platform.JOYSTICK: JoystickCredentialStore(
                settings.joystick_client_id,
                settings.joystick_client_secret,
                base_url=settings.joystick_base_url,
                access_token=settings.joystick_access_token,
                refresh_token=settings.joystick_refresh_token,
            ),
        }
        self.adapters: Dict[Platform, BaseChatAdapter] = self._build_adapters()
        for adapter in self.adapters.values():
            adapter.on_event(self.hub.publish)

        self._tasks: Dict[Platform, asyncio.Task] = {}

    def enabled(self, platform: Union[Platform, str]) -> bool:
        return bool(getattr(self.settings, f"{Platform(platform).value}_enabled"))

    def _build_adapters(self) -> Dict[Platform, BaseChatAdapter]:
        settings = self.settings
        adapters: Dict[Platform, BaseChatAdapter] = {}

        if settings.twitch_enabled:
            adapters[Platform.TWITCH] = TwitchIRCAdapter(
                channel=settings.twitch_channel,
                credentials=self.credentials[Platform.TWITCH],
                websocket_url=settings.twitch_irc_url,
            )
        if settings.youtube_enabled:
            adapters[Platform.YOUTUBE] = YouTubeChatAdapter(
                video_id=settings.youtube_live_video_id,
                api_key=settings.youtube_api_key,
                api_base_url=settings.youtube_api_base_url,
                default_polling_interval_ms=settings.youtube_poll_interval_ms,
            )
        if settings.kick_enabled:
            adapters[Platform.KICK] = KickPusherAdapter(
                channel_name=settings.kick_channel_name,
                pusher_key=settings.kick_pusher_key,
                pusher_cluster=settings.kick_pusher_cluster,
                chatroom_id=settings.kick_chatroom_id,
                api_base_url=settings.kick_api_base_url,
            )
        if settings.joystick_enabled:
            cable_url = settings.joystick_base_url.replace("https://", "wss://", 1) + "/cable"
            adapters[Platform.JOYSTICK] = JoystickCableAdapter(
                credentials=self.credentials[Platform.JOYSTICK],
                cable_url=cable_url,
            )
        return adapters

    async def start(self) -> None:
        """Start one task per enabled platform."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.settings.http_timeout_seconds)
            self._session = ClientSession(timeout=timeout)
            self._session_owned = True

        for store in self.credentials.values():
            store.use_session(self._session)
        for adapter in self.adapters.values():
            adapter.use_session(self._session)

        for platform in Platform:
            if platform in self.adapters:
                self._launch(platform)
            else:
                logger.info(f"[{platform.label}] Disabled - missing env vars")

    def _launch(self, platform: Platform) -> None:
        task = self._tasks.get(platform)
        if task is not None and not task.done():
            return

        adapter = self.adapters[platform]
        if isinstance(adapter, YouTubeChatAdapter):
            runner = adapter.start()
        else:
            supervisor = ReconnectionSupervisor(adapter, credentials=self.credentials.get(platform))
            runner = supervisor.run()

        self._tasks[platform] = asyncio.create_task(runner, name=f"multichat-{platform.value}")

    async def on_authorized(
        self,
        platform: Union[Platform, str],
        access_token: str,
        refresh_token: Optional[str],
        identity: Optional[str] = None,
    ) -> None:
        """Install credentials from the authorization flow and (re)start the adapter."""
        platform = Platform(platform)
        store = self.credentials.get(platform)
        if store is None:
            raise ValueError(f"{platform.label} does not use OAuth credentials")

        store.install(access_token, refresh_token, identity)

        adapter = self.adapters.get(platform)
        if adapter is None:
            logger.warning(f"[{platform.label}] Authorized but not configured; adapter not started")
            return

        adapter.resume()
        self._launch(platform)

    async def stop(self) -> None:
        """Stop all adapters and release the HTTP session."""
        for adapter in self.adapters.values():
            await adapter.stop()

        for task in self._tasks.values():
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        self._tasks.clear()

        if self._session_owned and self._session:
            await self._session.close()
            self._session = None
        logger.info("All chat adapters stopped")

    def status(self) -> Dict[str, bool]:
        """Enabled flags per platform plus whether OAuth platforms hold a token."""
        return {
            "twitch": self.settings.twitch_enabled,
            "twitchAuthed": self.credentials[Platform.TWITCH].has_token,
            "youtube": self.settings.youtube_enabled,
            "kick": self.settings.kick_enabled,
            "joystick": self.settings.joystick_enabled,
            "joystickAuthed": self.credentials[Platform.JOYSTICK].has_token,
        }

    def overlay_status(self) -> Dict[str, bool]:
        """Snapshot pushed to each overlay subscriber when it connects."""
        return {platform.value: self.enabled(platform) for platform in Platform}
