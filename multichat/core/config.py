"""
Core configuration module for MultiChat.

This module defines all configuration settings for the application using Pydantic Settings.
Configuration values are loaded from environment variables (or a .env file) with sensible
defaults. A platform is enabled only when the variables it needs are present.
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or a .env file.
    The settings are validated using Pydantic's type system.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application Settings
    app_name: str = Field(default="MultiChat", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="0.0.0.0", description="Bind address for the HTTP server")
    port: int = Field(default=3000, description="HTTP server port")
    public_base_url: Optional[str] = Field(
        default=None,
        description="Externally visible base URL used for OAuth redirects (defaults to request host)",
    )
    cors_origins: List[str] = Field(default=["*"], description="Allowed CORS origins")

    # HTTP client Settings
    http_timeout_seconds: float = Field(
        default=30.0, description="Total timeout for outbound HTTP requests"
    )

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    log_json_format: bool = Field(default=False, description="Use JSON format for structured logs")

    # Twitch Settings
    twitch_channel: Optional[str] = Field(default=None, description="Twitch channel to join")
    twitch_client_id: Optional[str] = Field(default=None, description="Twitch API client ID")
    twitch_client_secret: Optional[str] = Field(
        default=None, description="Twitch API client secret"
    )
    twitch_access_token: Optional[str] = Field(
        default=None, description="Twitch user access token (from the authorization flow)"
    )
    twitch_refresh_token: Optional[str] = Field(
        default=None, description="Twitch refresh token"
    )
    twitch_bot_username: Optional[str] = Field(
        default=None, description="Login name the IRC connection authenticates as"
    )
    twitch_irc_url: str = Field(
        default="wss://irc-ws.chat.twitch.tv:443", description="Twitch IRC WebSocket URL"
    )
    twitch_auth_url: str = Field(
        default="https://id.twitch.tv/oauth2", description="Twitch OAuth base URL"
    )
    twitch_api_base_url: str = Field(
        default="https://api.twitch.tv/helix", description="Twitch API base URL"
    )

    # YouTube Settings
    youtube_api_key: Optional[str] = Field(default=None, description="YouTube Data API v3 key")
    youtube_live_video_id: Optional[str] = Field(
        default=None, description="Video ID of the live broadcast"
    )
    youtube_poll_interval_ms: int = Field(
        default=5000, description="Poll interval used when the API does not suggest one"
    )
    youtube_api_base_url: str = Field(
        default="https://www.googleapis.com/youtube/v3",
        description="YouTube API base URL",
    )

    # Kick Settings
    kick_channel_name: Optional[str] = Field(default=None, description="Kick channel slug")
    kick_pusher_key: Optional[str] = Field(
        default="eb1d5f283081a78b932c", description="Kick Pusher application key"
    )
    kick_pusher_cluster: str = Field(default="us2", description="Kick Pusher cluster")
    kick_chatroom_id: Optional[str] = Field(
        default=None, description="Kick chatroom ID (looked up from the channel when absent)"
    )
    kick_api_base_url: str = Field(
        default="https://kick.com/api/v2", description="Kick public API base URL"
    )

    # Joystick Settings
    joystick_client_id: Optional[str] = Field(default=None, description="Joystick bot client ID")
    joystick_client_secret: Optional[str] = Field(
        default=None, description="Joystick bot client secret"
    )
    joystick_access_token: Optional[str] = Field(
        default=None, description="Joystick access token (from the authorization flow)"
    )
    joystick_refresh_token: Optional[str] = Field(
        default=None, description="Joystick refresh token"
    )
    joystick_base_url: str = Field(
        default="https://joystick.tv", description="Joystick base URL"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_comma_separated_list(cls, v):
        """Parse comma-separated string into list."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("twitch_channel", mode="after")
    @classmethod
    def normalize_twitch_channel(cls, v: Optional[str]) -> Optional[str]:
        """IRC channel names are lowercase and carry no leading '#'."""
        if v:
            return v.lower().replace("#", "")
        return v

    # Computed fields for platform availability
    @computed_field
    @property
    def twitch_enabled(self) -> bool:
        """Twitch needs a channel and an application registration."""
        return bool(self.twitch_channel and self.twitch_client_id and self.twitch_client_secret)

    @computed_field
    @property
    def youtube_enabled(self) -> bool:
        """YouTube needs an API key and the live video ID."""
        return bool(self.youtube_api_key and self.youtube_live_video_id)

    @computed_field
    @property
    def kick_enabled(self) -> bool:
        """Kick needs a channel name and the Pusher key."""
        return bool(self.kick_channel_name and self.kick_pusher_key)

    @computed_field
    @property
    def joystick_enabled(self) -> bool:
        """Joystick needs a bot application registration."""
        return bool(self.joystick_client_id and self.joystick_client_secret)

    @computed_field
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    This function returns a cached instance of the Settings class,
    ensuring that environment variables are only read once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
