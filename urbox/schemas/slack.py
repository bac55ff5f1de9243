"""Slack integration schemas."""

from __future__ import annotations

from pydantic import AliasChoices, Field

from urbox.schemas.common import ApiModel, OptionalTimestamp, Timestamp, utcnow


class SlackAccount(ApiModel):
    """A connected Slack workspace (OAuth secrets are never returned)."""

    id: str
    name: str = ""
    email: str | None = None
    team_id: str = ""
    team_name: str | None = None
    slack_id: str | None = None
    status: str = "active"
    created_at: OptionalTimestamp = None


class SlackChannel(ApiModel):
    id: str
    name: str = ""
    is_private: bool = Field(default=False, validation_alias=AliasChoices("is_private", "isPrivate"))
    is_member: bool = Field(default=False, validation_alias=AliasChoices("is_member", "isMember"))

    def to_tracked(self) -> dict[str, object]:
        """Shape expected by the tracked-channel endpoint."""
        return {
            "id": self.id,
            "name": self.name,
            "is_private": self.is_private,
            "is_member": self.is_member,
        }


class SlackMessage(ApiModel):
    id: str = ""
    original_id: str = ""
    body: str = ""
    timestamp: Timestamp = Field(default_factory=utcnow)
    sender_name: str = "Unknown"
    channel_name: str = ""
    channel_id: str = ""
    account_name: str | None = None
    team_id: str = ""
    has_media: bool = False
    media_url: str | None = None


class ChannelListResponse(ApiModel):
    channels: list[SlackChannel] = Field(default_factory=list)


class SlackMessageListResponse(ApiModel):
    messages: list[SlackMessage] = Field(default_factory=list)
