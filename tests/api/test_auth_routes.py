"""Tests for the OAuth authorization routes."""

from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi import status
from httpx import AsyncClient

from multichat.services.chat_adapters import Platform
from multichat.services.credentials import Credentials


@pytest.mark.asyncio
class TestTwitchAuth:
    """Test cases for the Twitch authorization flow."""

    async def test_auth_redirects_to_consent(self, async_client: AsyncClient):
        response = await async_client.get("/twitch/auth")

        assert response.status_code == status.HTTP_307_TEMPORARY_REDIRECT
        location = response.headers["location"]
        assert location.startswith("https://id.twitch.tv/oauth2/authorize?")
        query = parse_qs(urlparse(location).query)
        assert query["redirect_uri"] == ["http://test/twitch/callback"]

    async def test_callback_without_code(self, async_client: AsyncClient):
        response = await async_client.get("/twitch/callback")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "No code received"

    async def test_callback_installs_tokens(self, async_client: AsyncClient, service):
        store = service.credentials[Platform.TWITCH]
        store.exchange_code = AsyncMock(return_value=Credentials("access", "refresh"))
        store.fetch_identity = AsyncMock(return_value="botname")

        response = await async_client.get("/twitch/callback", params={"code": "abc"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "authorized"
        assert data["username"] == "botname"
        assert data["env"]["TWITCH_ACCESS_TOKEN"] == "access"
        store.exchange_code.assert_awaited_once_with("abc", "http://test/twitch/callback")
        store.fetch_identity.assert_awaited_once_with("access")
        assert store.credentials == Credentials("access", "refresh", "botname")
        assert service.launched == [Platform.TWITCH]

    async def test_callback_exchange_failure(self, async_client: AsyncClient, service):
        store = service.credentials[Platform.TWITCH]
        store.exchange_code = AsyncMock(return_value=None)

        response = await async_client.get("/twitch/callback", params={"code": "bad"})

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert not store.has_token
        assert service.launched == []


@pytest.mark.asyncio
class TestJoystickAuth:
    """Test cases for the Joystick authorization flow."""

    async def test_auth_redirects_to_consent(self, async_client: AsyncClient):
        response = await async_client.get("/joystick/auth")

        assert response.status_code == status.HTTP_307_TEMPORARY_REDIRECT
        assert response.headers["location"].startswith("https://joystick.tv/api/oauth/authorize?")

    async def test_callback_installs_tokens(self, async_client: AsyncClient, service):
        store = service.credentials[Platform.JOYSTICK]
        store.exchange_code = AsyncMock(return_value=Credentials("joy-access", "joy-refresh"))

        response = await async_client.get("/joystick/callback", params={"code": "abc"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["env"] == {
            "JOYSTICK_ACCESS_TOKEN": "joy-access",
            "JOYSTICK_REFRESH_TOKEN": "joy-refresh",
        }
        assert store.access_token == "joy-access"
        assert service.launched == [Platform.JOYSTICK]

        status_response = await async_client.get("/status")
        assert status_response.json()["joystickAuthed"] is True
