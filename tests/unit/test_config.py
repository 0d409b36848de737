"""Tests for application settings."""

import pytest

from multichat.core.config import Settings


def make_settings(**overrides):
    values = dict(
        _env_file=None,
        twitch_channel=None,
        twitch_client_id=None,
        twitch_client_secret=None,
        youtube_api_key=None,
        youtube_live_video_id=None,
        kick_channel_name=None,
        joystick_client_id=None,
        joystick_client_secret=None,
    )
    values.update(overrides)
    return Settings(**values)


def test_defaults():
    settings = make_settings()

    assert settings.port == 3000
    assert settings.youtube_poll_interval_ms == 5000
    assert settings.kick_pusher_cluster == "us2"
    assert not settings.twitch_enabled
    assert not settings.youtube_enabled
    assert not settings.kick_enabled
    assert not settings.joystick_enabled


def test_twitch_channel_normalized():
    assert make_settings(twitch_channel="#SomeChannel").twitch_channel == "somechannel"


@pytest.mark.parametrize(
    "overrides,flag",
    [
        ({"twitch_channel": "c", "twitch_client_id": "i", "twitch_client_secret": "s"}, "twitch_enabled"),
        ({"youtube_api_key": "k", "youtube_live_video_id": "v"}, "youtube_enabled"),
        ({"kick_channel_name": "c"}, "kick_enabled"),
        ({"joystick_client_id": "i", "joystick_client_secret": "s"}, "joystick_enabled"),
    ],
)
def test_platform_enabled(overrides, flag):
    assert getattr(make_settings(**overrides), flag) is True


def test_partial_configuration_disables_platform():
    assert not make_settings(twitch_channel="c", twitch_client_id="i").twitch_enabled
    assert not make_settings(youtube_api_key="k").youtube_enabled


def test_cors_origins_from_string():
    settings = make_settings(cors_origins="http://a.test, http://b.test")

    assert settings.cors_origins == ["http://a.test", "http://b.test"]
