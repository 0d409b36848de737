"""Data models for platform wire payloads.

This module contains Pydantic models for the inbound frames of the Pusher
(Kick), ActionCable (Joystick) and YouTube Live Chat APIs. Only the fields
the adapters read are declared; everything else is ignored.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PusherFrame(BaseModel):
    """Pusher protocol envelope."""
    event: str
    data: Any = None
    channel: Optional[str] = None


class KickBadge(BaseModel):
    """Kick chat badge."""
    type: Optional[str] = None
    text: Optional[str] = None
    count: Optional[int] = None


class KickIdentity(BaseModel):
    """Kick sender identity (color and badges)."""
    color: Optional[str] = None
    badges: List[KickBadge] = Field(default_factory=list)

    @field_validator("badges", mode="before")
    @classmethod
    def null_badges(cls, v):
        return [badge for badge in v or [] if badge]


class KickSender(BaseModel):
    """Kick message sender."""
    id: Optional[int] = None
    username: Optional[str] = None
    slug: Optional[str] = None
    identity: KickIdentity = Field(default_factory=KickIdentity)

    @field_validator("identity", mode="before")
    @classmethod
    def null_identity(cls, v):
        return {} if v is None else v


class KickChatMessage(BaseModel):
    """Payload of the ``App\\Events\\ChatMessageEvent`` Pusher event."""
    id: Optional[str] = None
    chatroom_id: Optional[int] = None
    content: Optional[str] = None
    sender: KickSender = Field(default_factory=KickSender)

    @field_validator("sender", mode="before")
    @classmethod
    def null_sender(cls, v):
        return {} if v is None else v


class CableFrame(BaseModel):
    """ActionCable protocol envelope."""
    type: Optional[str] = None
    identifier: Optional[str] = None
    message: Any = None
    reason: Optional[str] = None
    reconnect: Optional[bool] = None


class JoystickAuthor(BaseModel):
    """Joystick chat message author."""
    model_config = ConfigDict(populate_by_name=True)

    username: Optional[str] = None
    username_color: Optional[str] = Field(default=None, alias="usernameColor")
    is_streamer: bool = Field(default=False, alias="isStreamer")
    is_moderator: bool = Field(default=False, alias="isModerator")
    is_subscriber: bool = Field(default=False, alias="isSubscriber")

    @field_validator("is_streamer", "is_moderator", "is_subscriber", mode="before")
    @classmethod
    def null_flags(cls, v):
        return False if v is None else v


class JoystickChatMessage(BaseModel):
    """Gateway channel message carried in the ActionCable ``message`` field."""
    event: Optional[str] = None
    type: Optional[str] = None
    text: Optional[str] = None
    author: JoystickAuthor = Field(default_factory=JoystickAuthor)

    @field_validator("author", mode="before")
    @classmethod
    def null_author(cls, v):
        return {} if v is None else v


class YouTubeAuthorDetails(BaseModel):
    """``authorDetails`` of a live chat message resource."""
    model_config = ConfigDict(populate_by_name=True)

    channel_id: Optional[str] = Field(default=None, alias="channelId")
    display_name: Optional[str] = Field(default=None, alias="displayName")
    is_chat_owner: bool = Field(default=False, alias="isChatOwner")
    is_chat_moderator: bool = Field(default=False, alias="isChatModerator")
    is_chat_sponsor: bool = Field(default=False, alias="isChatSponsor")

    @field_validator("is_chat_owner", "is_chat_moderator", "is_chat_sponsor", mode="before")
    @classmethod
    def null_flags(cls, v):
        return False if v is None else v


class YouTubeSnippet(BaseModel):
    """``snippet`` of a live chat message resource."""
    model_config = ConfigDict(populate_by_name=True)

    type: Optional[str] = None
    display_message: Optional[str] = Field(default=None, alias="displayMessage")


class YouTubeChatItem(BaseModel):
    """A ``liveChatMessage`` resource."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    snippet: YouTubeSnippet = Field(default_factory=YouTubeSnippet)
    author_details: YouTubeAuthorDetails = Field(
        default_factory=YouTubeAuthorDetails, alias="authorDetails"
    )

    @field_validator("snippet", "author_details", mode="before")
    @classmethod
    def null_parts(cls, v):
        return {} if v is None else v
