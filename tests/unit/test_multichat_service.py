"""Tests for the MultiChat service wiring."""

import pytest

from multichat.services.chat_adapters import (
    JoystickCableAdapter,
    KickPusherAdapter,
    Platform,
    TwitchIRCAdapter,
    YouTubeChatAdapter,
)
from multichat.services.chat_adapters.base import AdapterState
from multichat.services.multichat import MultiChatService


class TestMultiChatService:
    """Test cases for MultiChatService."""

    def test_builds_enabled_adapters(self, test_settings):
        service = MultiChatService(test_settings)

        assert isinstance(service.adapters[Platform.TWITCH], TwitchIRCAdapter)
        assert isinstance(service.adapters[Platform.YOUTUBE], YouTubeChatAdapter)
        assert isinstance(service.adapters[Platform.KICK], KickPusherAdapter)
        assert isinstance(service.adapters[Platform.JOYSTICK], JoystickCableAdapter)
        assert service.adapters[Platform.TWITCH].channel == "somechannel"
        assert service.adapters[Platform.JOYSTICK].cable_url == "wss://joystick.tv/cable"

    def test_disabled_platforms_have_no_adapter(self, empty_settings):
        service = MultiChatService(empty_settings)

        assert service.adapters == {}
        assert service.overlay_status() == {
            "twitch": False,
            "youtube": False,
            "kick": False,
            "joystick": False,
        }

    def test_status(self, test_settings):
        service = MultiChatService(test_settings)

        assert service.status() == {
            "twitch": True,
            "twitchAuthed": False,
            "youtube": True,
            "kick": True,
            "joystick": True,
            "joystickAuthed": False,
        }

    def test_status_with_stored_token(self, test_settings):
        settings = test_settings.model_copy(update={"twitch_access_token": "abc"})
        service = MultiChatService(settings)

        assert service.status()["twitchAuthed"] is True

    @pytest.mark.asyncio
    async def test_adapter_events_reach_hub(self, test_settings):
        service = MultiChatService(test_settings)
        frames = []

        class Recorder:
            async def send(self, frame):
                frames.append(frame)

        await service.hub.subscribe(Recorder())
        adapter = service.adapters[Platform.KICK]
        event = adapter.parse_chat_message({"content": "hi", "sender": {"username": "k"}})

        await adapter._emit(event)

        assert frames == [{"type": "chat_message", "data": event.to_wire()}]

    @pytest.mark.asyncio
    async def test_on_authorized_installs_and_launches(self, test_settings):
        service = MultiChatService(test_settings)
        launched = []
        service._launch = launched.append
        adapter = service.adapters[Platform.JOYSTICK]
        adapter._set_state(AdapterState.HALTED)

        await service.on_authorized(Platform.JOYSTICK, "new-access", "new-refresh")

        assert service.credentials[Platform.JOYSTICK].access_token == "new-access"
        assert service.credentials[Platform.JOYSTICK].refresh_token == "new-refresh"
        assert not adapter.is_halted
        assert launched == [Platform.JOYSTICK]
        assert service.status()["joystickAuthed"] is True

    @pytest.mark.asyncio
    async def test_on_authorized_rejects_non_oauth_platform(self, test_settings):
        service = MultiChatService(test_settings)

        with pytest.raises(ValueError):
            await service.on_authorized("kick", "token", None)

    @pytest.mark.asyncio
    async def test_start_and_stop_without_platforms(self, empty_settings):
        service = MultiChatService(empty_settings)

        await service.start()
        await service.stop()

        assert service._tasks == {}
