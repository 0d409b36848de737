"""Tests for the Twitch IRC-over-WebSocket adapter."""

import pytest

from multichat.services.chat_adapters.base import (
    AdapterState,
    ChatAuthenticationError,
    Platform,
)
from multichat.services.chat_adapters.twitch_irc import (
    ANONYMOUS_NICK,
    TwitchIRCAdapter,
    irc_command,
    parse_badges,
    parse_privmsg,
    parse_tags,
)
from multichat.services.credentials import TwitchCredentialStore


CHAT_LINE = (
    "@badges=moderator/1,subscriber/12;color=#FF0000;display-name=Bob "
    ":bob!bob@bob.tmi.twitch.tv PRIVMSG #chan :hello world"
)


@pytest.fixture
def credentials():
    return TwitchCredentialStore(
        "client-id",
        "client-secret",
        access_token="abc123",
        refresh_token="refresh",
        identity="botname",
    )


@pytest.fixture
def adapter(credentials, mock_session):
    return TwitchIRCAdapter(channel="#SomeChannel", credentials=credentials, session=mock_session)


class TestParsing:
    """Test cases for the PRIVMSG parsing helpers."""

    def test_parse_tags(self):
        tags = parse_tags("badges=;color=;display-name=Bob;emotes=")
        assert tags == {"badges": "", "color": "", "display-name": "Bob", "emotes": ""}

    def test_parse_tags_keeps_equals_in_value(self):
        assert parse_tags("key=a=b")["key"] == "a=b"

    def test_parse_badges(self):
        assert parse_badges("moderator/1,subscriber/12") == ["moderator", "subscriber"]
        assert parse_badges("") == []
        assert parse_badges(None) == []

    def test_parse_privmsg(self):
        parsed = parse_privmsg(CHAT_LINE)

        assert parsed is not None
        assert parsed.username == "Bob"
        assert parsed.message == "hello world"
        assert parsed.color == "#FF0000"
        assert parsed.badges == ["moderator", "subscriber"]

    def test_parse_privmsg_falls_back_to_nick(self):
        line = "@badges=;color=;display-name= :alice!alice@alice.tmi.twitch.tv PRIVMSG #chan :hey"
        parsed = parse_privmsg(line)

        assert parsed.username == "alice"
        assert parsed.color is None
        assert parsed.badges == []

    @pytest.mark.parametrize(
        "line,command,params",
        [
            (":tmi.twitch.tv NOTICE * :Login authentication failed", "NOTICE", ["*", "Login authentication failed"]),
            (":bot!bot@bot.tmi.twitch.tv JOIN #chan", "JOIN", ["#chan"]),
            ("@emote-only=0;room-id=1 :tmi.twitch.tv ROOMSTATE #chan", "ROOMSTATE", ["#chan"]),
            (CHAT_LINE, "PRIVMSG", ["#chan", "hello world"]),
            (":tmi.twitch.tv RECONNECT", "RECONNECT", []),
            ("", "", []),
        ],
    )
    def test_irc_command(self, line, command, params):
        assert irc_command(line) == (command, params)

    @pytest.mark.parametrize(
        "line",
        [
            ":tmi.twitch.tv 001 botname :Welcome, GLHF!",
            ":bob!bob@bob.tmi.twitch.tv PRIVMSG #chan :no tags",
            "@badges=;color= :bob!bob@bob.tmi.twitch.tv PRIVMSG #chan :   ",
            "garbage",
        ],
    )
    def test_non_chat_lines(self, line):
        assert parse_privmsg(line) is None


class TestTwitchIRCAdapter:
    """Test cases for TwitchIRCAdapter."""

    def test_initialization(self, adapter):
        assert adapter.channel == "somechannel"
        assert adapter.platform == Platform.TWITCH
        assert adapter.state == AdapterState.DISCONNECTED
        assert not adapter.awaiting_authorization

    def test_parse_line_normalizes_event(self, adapter):
        event = adapter.parse_line(CHAT_LINE)

        assert event.platform == Platform.TWITCH
        assert event.username == "Bob"
        assert event.message == "hello world"
        assert event.color == "#FF0000"
        assert event.badges == ["moderator", "subscriber"]
        assert event.ts > 0

    @pytest.mark.asyncio
    async def test_login_sequence(self, adapter, fake_ws):
        await adapter.run_once()

        assert fake_ws.sent == [
            "PASS oauth:abc123",
            "NICK botname",
            "CAP REQ :twitch.tv/tags twitch.tv/commands",
            "JOIN #somechannel",
        ]
        assert adapter.state == AdapterState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_anonymous_nick_without_identity(self, mock_session, fake_ws):
        store = TwitchCredentialStore("client-id", "client-secret", access_token="abc123")
        store.fetch_identity = _async_return(None)
        adapter = TwitchIRCAdapter(channel="chan", credentials=store, session=mock_session)

        await adapter.run_once()

        assert f"NICK {ANONYMOUS_NICK}" in fake_ws.sent

    @pytest.mark.asyncio
    async def test_ping_answered_with_pong(self, adapter, fake_ws):
        fake_ws.feed("PING :tmi.twitch.tv")

        await adapter.run_once()

        assert fake_ws.sent[-1] == "PONG :tmi.twitch.tv"

    @pytest.mark.asyncio
    async def test_chat_lines_emitted_in_order(self, adapter, fake_ws):
        received = []
        adapter.on_event(received.append)
        second = CHAT_LINE.replace("hello world", "second")
        fake_ws.feed(
            ":tmi.twitch.tv 001 botname :Welcome\r\n" + CHAT_LINE,
            "not an irc line at all",
            second,
        )

        await adapter.run_once()

        assert [event.message for event in received] == ["hello world", "second"]

    @pytest.mark.asyncio
    async def test_join_echo_marks_subscribed(self, adapter, fake_ws):
        states = []
        adapter.on_event(lambda event: states.append(adapter.state))
        fake_ws.feed(":botname!botname@botname.tmi.twitch.tv JOIN #somechannel", CHAT_LINE)

        await adapter.run_once()

        assert states == [AdapterState.SUBSCRIBED]

    @pytest.mark.asyncio
    async def test_chat_text_resembling_commands_is_delivered(self, adapter, fake_ws):
        received = []
        adapter.on_event(received.append)
        join_text = CHAT_LINE.replace("hello world", "watch me JOIN #somechannel ROOMSTATE ")
        notice_text = CHAT_LINE.replace(
            "hello world", "x NOTICE * :Login authentication failed"
        )
        fake_ws.feed(join_text, notice_text, ":tmi.twitch.tv ROOMSTATE #somechannel")

        await adapter.run_once()

        assert [event.message for event in received] == [
            "watch me JOIN #somechannel ROOMSTATE",
            "x NOTICE * :Login authentication failed",
        ]
        assert not adapter.auth_failed

    @pytest.mark.asyncio
    async def test_auth_failure_notice(self, adapter, fake_ws):
        fake_ws.feed(":tmi.twitch.tv NOTICE * :Login authentication failed", CHAT_LINE)
        received = []
        adapter.on_event(received.append)

        with pytest.raises(ChatAuthenticationError):
            await adapter.run_once()

        assert fake_ws.closed
        assert received == []

    @pytest.mark.asyncio
    async def test_no_token_skips_connection(self, mock_session):
        store = TwitchCredentialStore("client-id", "client-secret")
        adapter = TwitchIRCAdapter(channel="chan", credentials=store, session=mock_session)

        await adapter.run_once()

        assert adapter.awaiting_authorization
        mock_session.ws_connect.assert_not_called()

    @pytest.mark.asyncio
    async def test_callback_error_does_not_stop_processing(self, adapter, fake_ws):
        received = []

        def failing(event):
            raise RuntimeError("sink failed")

        adapter.on_event(failing)
        adapter.on_event(received.append)
        fake_ws.feed(CHAT_LINE, CHAT_LINE)

        await adapter.run_once()

        assert len(received) == 2


def _async_return(value):
    async def _inner(*args, **kwargs):
        return value
    return _inner
