"""OAuth credential stores for the platforms that require user authorization.

A store holds the current access/refresh token pair for one platform and
rotates it in place. Adapters read the tokens when they open a connection;
only ``refresh()`` and the authorization callback (``install()``) write them.
"""

import asyncio
import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

import aiohttp
import backoff
from aiohttp import ClientSession

from multichat.services.chat_adapters.base import Platform


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    """An access/refresh token pair and the identity it belongs to."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    identity: Optional[str] = None


class CredentialStore(ABC):
    """Holds and refreshes one platform's OAuth tokens."""

    platform: Platform

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        identity: Optional[str] = None,
        session: Optional[ClientSession] = None,
    ):
        """Initialize the store.

        Args:
            client_id: OAuth application client ID
            client_secret: OAuth application client secret
            access_token: Initial access token, if already authorized
            refresh_token: Initial refresh token
            identity: Login name the tokens belong to, if known
            session: Optional shared aiohttp session
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self._credentials = Credentials(access_token, refresh_token, identity)
        self._session = session
        self._session_owned = session is None

    @property
    def session(self) -> ClientSession:
        """Get the HTTP session, creating one if necessary."""
        if self._session is None:
            self._session = ClientSession(timeout=aiohttp.ClientTimeout(total=30))
            self._session_owned = True
        return self._session

    def use_session(self, session: ClientSession) -> None:
        """Share an externally managed HTTP session."""
        self._session = session
        self._session_owned = False

    @property
    def log_prefix(self) -> str:
        return f"[{self.platform.label}]"

    @property
    def credentials(self) -> Credentials:
        """Snapshot of the current credentials."""
        return self._credentials

    @property
    def access_token(self) -> Optional[str]:
        return self._credentials.access_token

    @property
    def refresh_token(self) -> Optional[str]:
        return self._credentials.refresh_token

    @property
    def identity(self) -> Optional[str]:
        return self._credentials.identity

    @property
    def has_token(self) -> bool:
        return bool(self._credentials.access_token)

    def install(
        self,
        access_token: str,
        refresh_token: Optional[str],
        identity: Optional[str] = None,
    ) -> None:
        """Install a token pair obtained by the authorization flow."""
        self._credentials = Credentials(
            access_token=access_token,
            refresh_token=refresh_token,
            identity=identity or self._credentials.identity,
        )
        logger.info(f"{self.log_prefix} Credentials installed")

    def set_identity(self, identity: Optional[str]) -> None:
        self._credentials = replace(self._credentials, identity=identity)

    async def refresh(self) -> bool:
        """Exchange the stored refresh token for a new token pair.

        Returns:
            bool: True if both tokens were replaced, False if the stored
            tokens were left untouched
        """
        if not self._credentials.refresh_token:
            logger.warning(f"{self.log_prefix} No refresh token stored, cannot refresh")
            return False

        try:
            status, data = await self._request_refresh(self._credentials.refresh_token)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"{self.log_prefix} Token refresh error: {e}")
            return False

        new_credentials = self._parse_token_response(status, data)
        if new_credentials is None:
            logger.error(f"{self.log_prefix} Token refresh failed: {data}")
            return False

        self._credentials = new_credentials
        logger.info(f"{self.log_prefix} Token refreshed successfully")
        return True

    async def exchange_code(self, code: str, redirect_uri: str) -> Optional[Credentials]:
        """Exchange an authorization code for a token pair.

        Does not install the result; the authorization flow decides that.
        """
        try:
            status, data = await self._request_code_exchange(code, redirect_uri)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"{self.log_prefix} Authorization code exchange error: {e}")
            return None

        credentials = self._parse_token_response(status, data)
        if credentials is None:
            logger.error(f"{self.log_prefix} Authorization code exchange failed: {data}")
        return credentials

    def _parse_token_response(self, status: int, data: Any) -> Optional[Credentials]:
        if not 200 <= status < 300 or not isinstance(data, dict):
            return None
        access_token = data.get("access_token")
        if not access_token:
            return None
        return Credentials(
            access_token=access_token,
            refresh_token=data.get("refresh_token") or self._credentials.refresh_token,
            identity=self._credentials.identity,
        )

    async def _post_json(
        self, url: str, data: Optional[Dict[str, str]] = None, headers: Optional[Dict[str, str]] = None
    ) -> Tuple[int, Any]:
        async with self.session.post(url, data=data, headers=headers) as response:
            body = await response.json(content_type=None)
            return response.status, body

    @abstractmethod
    async def _request_refresh(self, refresh_token: str) -> Tuple[int, Any]:
        """POST the refresh-token grant. Returns (status, decoded body)."""
        pass

    @abstractmethod
    async def _request_code_exchange(self, code: str, redirect_uri: str) -> Tuple[int, Any]:
        """POST the authorization-code grant. Returns (status, decoded body)."""
        pass

    @abstractmethod
    def authorize_url(self, redirect_uri: str) -> str:
        """URL of the platform's consent page."""
        pass


class TwitchCredentialStore(CredentialStore):
    """Twitch user tokens for the IRC connection."""

    platform = Platform.TWITCH
    scopes = "chat:read chat:edit"

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        auth_base_url: str = "https://id.twitch.tv/oauth2",
        api_base_url: str = "https://api.twitch.tv/helix",
        **kwargs,
    ):
        super().__init__(client_id, client_secret, **kwargs)
        self.auth_base_url = auth_base_url.rstrip("/")
        self.api_base_url = api_base_url.rstrip("/")

    @property
    def token_url(self) -> str:
        return f"{self.auth_base_url}/token"

    def authorize_url(self, redirect_uri: str) -> str:
        params = urlencode({
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self.scopes,
        })
        return f"{self.auth_base_url}/authorize?{params}"

    async def _request_refresh(self, refresh_token: str) -> Tuple[int, Any]:
        return await self._post_json(
            self.token_url,
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id or "",
                "client_secret": self.client_secret or "",
            },
        )

    async def _request_code_exchange(self, code: str, redirect_uri: str) -> Tuple[int, Any]:
        return await self._post_json(
            self.token_url,
            data={
                "client_id": self.client_id or "",
                "client_secret": self.client_secret or "",
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": redirect_uri,
            },
        )

    @backoff.on_exception(backoff.expo, aiohttp.ClientError, max_tries=3)
    async def _get_user_login(self, access_token: str) -> Optional[str]:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Client-Id": self.client_id or "",
        }
        async with self.session.get(f"{self.api_base_url}/users", headers=headers) as response:
            data = await response.json(content_type=None)
        users = (data or {}).get("data") or []
        return users[0].get("login") if users else None

    async def fetch_identity(self, access_token: Optional[str] = None) -> Optional[str]:
        """Look up the login name that owns an access token (the stored one by default)."""
        access_token = access_token or self._credentials.access_token
        if not access_token:
            return None
        try:
            return await self._get_user_login(access_token)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"{self.log_prefix} Failed to fetch username: {e}")
            return None


class JoystickCredentialStore(CredentialStore):
    """Joystick bot tokens.

    Joystick authenticates the token endpoint with HTTP Basic credentials
    built from the bot's client id and secret; the same key authenticates
    the ActionCable socket.
    """

    platform = Platform.JOYSTICK

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        base_url: str = "https://joystick.tv",
        **kwargs,
    ):
        super().__init__(client_id, client_secret, **kwargs)
        self.base_url = base_url.rstrip("/")

    @property
    def basic_key(self) -> str:
        raw = f"{self.client_id}:{self.client_secret}".encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/api/oauth/token"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Basic {self.basic_key}",
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

    def authorize_url(self, redirect_uri: str) -> str:
        # Joystick redirects to the callback registered with the bot, not redirect_uri
        params = urlencode({"response_type": "code", "client_id": self.client_id, "scope": "bot"})
        return f"{self.base_url}/api/oauth/authorize?{params}"

    async def _request_refresh(self, refresh_token: str) -> Tuple[int, Any]:
        params = urlencode({"grant_type": "refresh_token", "refresh_token": refresh_token})
        return await self._post_json(f"{self.token_url}?{params}", headers=self._headers())

    async def _request_code_exchange(self, code: str, redirect_uri: str) -> Tuple[int, Any]:
        params = urlencode({
            "redirect_uri": "unused",
            "code": code,
            "grant_type": "authorization_code",
        })
        return await self._post_json(f"{self.token_url}?{params}", headers=self._headers())
