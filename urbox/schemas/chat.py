"""Chat schemas — groups, messages, attachments, reactions."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import ConfigDict, Field

from urbox.schemas.common import ApiModel, OptionalTimestamp, Timestamp, utcnow


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"

    @classmethod
    def _missing_(cls, value: object) -> MessageType:
        return cls.TEXT


class ChatAttachment(ApiModel):
    name: str = ""
    url: str = ""
    key: str = ""
    type: str = ""
    size: int = 0


class ChatReaction(ApiModel):
    user_id: str = ""
    user_name: str = ""
    reaction: str
    timestamp: Timestamp = Field(default_factory=utcnow)


class ChatMessage(ApiModel):
    """A chat message. Immutable: reaction updates produce a copy."""

    model_config = ConfigDict(frozen=True)

    id: str
    group_id: str = ""
    sender_id: str = ""
    sender_name: str = "Unknown"
    content: str = ""
    type: MessageType = MessageType.TEXT
    created_at: Timestamp = Field(default_factory=utcnow)
    attachments: list[ChatAttachment] = Field(default_factory=list)
    reactions: list[ChatReaction] = Field(default_factory=list)

    def with_reactions(self, reactions: Iterable[ChatReaction]) -> ChatMessage:
        return self.model_copy(update={"reactions": list(reactions)})


class ChatGroup(ApiModel):
    id: str
    name: str = ""
    description: str | None = None
    company_id: str = ""
    created_by: str = ""
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: OptionalTimestamp = None
    type: str = "public"
    members: list[str] = Field(default_factory=list)
    last_message: dict[str, Any] | None = None


class ReactionUpdate(ApiModel):
    """Payload of the ``reaction_update`` socket event."""

    message_id: str
    reactions: list[ChatReaction] = Field(default_factory=list)


# ── Response envelopes ──


class GroupResponse(ApiModel):
    group: ChatGroup


class GroupListResponse(ApiModel):
    groups: list[ChatGroup] = Field(default_factory=list)


class MessageResponse(ApiModel):
    message: ChatMessage


class MessageListResponse(ApiModel):
    messages: list[ChatMessage] = Field(default_factory=list)


class AttachmentResponse(ApiModel):
    attachment: ChatAttachment


class ReactionListResponse(ApiModel):
    reactions: list[ChatReaction] = Field(default_factory=list)
