"""OAuth authorization endpoints for Twitch and Joystick.

Each platform gets a pair of routes: ``/<platform>/auth`` redirects the
streamer to the consent page, ``/<platform>/callback`` exchanges the returned
code, installs the tokens and (re)starts the adapter.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from structlog import get_logger

from ...core.config import Settings
from ...services.chat_adapters import Platform
from ...services.credentials import Credentials, CredentialStore, TwitchCredentialStore
from ...services.multichat import MultiChatService
from ..dependencies import get_service, get_settings_dep

logger = get_logger()

router = APIRouter()


def _callback_url(request: Request, settings: Settings, platform: Platform) -> str:
    base_url = settings.public_base_url or str(request.base_url)
    return f"{base_url.rstrip('/')}/{platform.value}/callback"


def _store(service: MultiChatService, platform: Platform) -> CredentialStore:
    store = service.credentials.get(platform)
    if store is None or not store.client_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{platform.label} client credentials are not configured",
        )
    return store


async def _complete_authorization(
    service: MultiChatService,
    platform: Platform,
    credentials: Optional[Credentials],
    identity: Optional[str] = None,
) -> None:
    if credentials is None or not credentials.access_token:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"{platform.label} token exchange failed",
        )
    await service.on_authorized(
        platform, credentials.access_token, credentials.refresh_token, identity
    )
    logger.info("oauth_authorized", platform=platform.value, identity=identity)


def _env_hint(prefix: str, credentials: Credentials) -> Dict[str, Optional[str]]:
    return {
        f"{prefix}_ACCESS_TOKEN": credentials.access_token,
        f"{prefix}_REFRESH_TOKEN": credentials.refresh_token,
    }


@router.get("/twitch/auth")
async def twitch_auth(
    request: Request,
    service: MultiChatService = Depends(get_service),
    settings: Settings = Depends(get_settings_dep),
):
    """Redirect to the Twitch consent page."""
    store = _store(service, Platform.TWITCH)
    redirect_uri = _callback_url(request, settings, Platform.TWITCH)
    return RedirectResponse(store.authorize_url(redirect_uri))


@router.get("/twitch/callback")
async def twitch_callback(
    request: Request,
    code: Optional[str] = None,
    service: MultiChatService = Depends(get_service),
    settings: Settings = Depends(get_settings_dep),
) -> Dict[str, Any]:
    """Exchange the Twitch authorization code and start the Twitch adapter."""
    if not code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No code received")

    store = _store(service, Platform.TWITCH)
    redirect_uri = _callback_url(request, settings, Platform.TWITCH)
    credentials = await store.exchange_code(code, redirect_uri)

    identity = None
    if credentials is not None and isinstance(store, TwitchCredentialStore):
        identity = await store.fetch_identity(credentials.access_token)
    await _complete_authorization(service, Platform.TWITCH, credentials, identity)

    env = _env_hint("TWITCH", credentials)
    env["TWITCH_BOT_USERNAME"] = identity
    return {
        "status": "authorized",
        "platform": Platform.TWITCH.value,
        "username": identity,
        "env": env,
    }


@router.get("/joystick/auth")
async def joystick_auth(
    request: Request,
    service: MultiChatService = Depends(get_service),
    settings: Settings = Depends(get_settings_dep),
):
    """Redirect to the Joystick bot consent page."""
    store = _store(service, Platform.JOYSTICK)
    redirect_uri = _callback_url(request, settings, Platform.JOYSTICK)
    return RedirectResponse(store.authorize_url(redirect_uri))


@router.get("/joystick/callback")
async def joystick_callback(
    request: Request,
    code: Optional[str] = None,
    service: MultiChatService = Depends(get_service),
    settings: Settings = Depends(get_settings_dep),
) -> Dict[str, Any]:
    """Exchange the Joystick authorization code and start the Joystick adapter."""
    if not code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No code received")

    store = _store(service, Platform.JOYSTICK)
    redirect_uri = _callback_url(request, settings, Platform.JOYSTICK)
    credentials = await store.exchange_code(code, redirect_uri)
    await _complete_authorization(service, Platform.JOYSTICK, credentials)

    return {
        "status": "authorized",
        "platform": Platform.JOYSTICK.value,
        "env": _env_hint("JOYSTICK", credentials),
    }
