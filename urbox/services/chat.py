"""Team chat REST calls: groups, messages, attachments, reactions.

Every call is authenticated with the session's id token. Live delivery goes
through ``urbox.core.realtime``; this module only covers request/response.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import BinaryIO

from urbox.config import get_settings
from urbox.core.errors import ValidationError
from urbox.core.http import ApiClient, parse_model
from urbox.core.logging import get_logger
from urbox.schemas.chat import (
    AttachmentResponse,
    ChatAttachment,
    ChatGroup,
    ChatMessage,
    ChatReaction,
    GroupListResponse,
    GroupResponse,
    MessageListResponse,
    MessageResponse,
    MessageType,
    ReactionListResponse,
)

logger = get_logger(__name__)

BASE = "/api/chat"


class ChatService:
    """Chat endpoints bound to one ``ApiClient``."""

    def __init__(self, api: ApiClient) -> None:
        self.api = api

    # ── Groups ───────────────────────────────────────────────────

    async def create_group(
        self,
        name: str,
        *,
        description: str | None = None,
        members: Sequence[str] = (),
        type: str = "public",
    ) -> ChatGroup:
        if not name.strip():
            raise ValidationError("Group name is required", field="name")
        body = await self.api.post(
            f"{BASE}/groups",
            json={
                "name": name.strip(),
                "description": description,
                "members": list(members),
                "type": type,
            },
            auth=True,
        )
        group = parse_model(GroupResponse, body).group
        logger.info("chat_group_created", group_id=group.id)
        return group

    async def get_groups(self) -> list[ChatGroup]:
        body = await self.api.get(f"{BASE}/groups", auth=True)
        return parse_model(GroupListResponse, body).groups

    async def get_group(self, group_id: str) -> ChatGroup:
        body = await self.api.get(f"{BASE}/groups/{group_id}", auth=True)
        return parse_model(GroupResponse, body).group

    async def add_members(self, group_id: str, member_ids: Sequence[str]) -> None:
        await self.api.post(
            f"{BASE}/groups/{group_id}/members",
            json={"memberIds": list(member_ids)},
            auth=True,
        )

    async def remove_member(self, group_id: str, user_id: str) -> None:
        await self.api.delete(f"{BASE}/groups/{group_id}/members/{user_id}", auth=True)

    # ── Messages ─────────────────────────────────────────────────

    async def get_messages(self, group_id: str, limit: int | None = None) -> list[ChatMessage]:
        """History page for a group, oldest first as the backend returns it."""
        if limit is None:
            limit = get_settings().chat_history_limit
        body = await self.api.get(f"{BASE}/messages/{group_id}", params={"limit": limit}, auth=True)
        return parse_model(MessageListResponse, body).messages

    async def send_message(
        self,
        group_id: str,
        content: str,
        attachments: Sequence[ChatAttachment] = (),
        type: MessageType = MessageType.TEXT,
    ) -> ChatMessage:
        body = await self.api.post(
            f"{BASE}/messages",
            json={
                "groupId": group_id,
                "content": content,
                "type": type.value,
                "attachments": [a.to_payload() for a in attachments],
            },
            auth=True,
        )
        return parse_model(MessageResponse, body).message

    async def upload_attachment(
        self,
        group_id: str,
        filename: str,
        content: bytes | BinaryIO,
        content_type: str = "application/octet-stream",
    ) -> ChatAttachment:
        body = await self.api.post(
            f"{BASE}/messages/upload",
            data={"groupId": group_id},
            files={"file": (filename, content, content_type)},
            auth=True,
        )
        return parse_model(AttachmentResponse, body).attachment

    async def send_reaction(self, message_id: str, reaction: str) -> list[ChatReaction]:
        """Toggle ``reaction`` for the current user; returns the resulting set."""
        body = await self.api.post(
            f"{BASE}/messages/{message_id}/reactions",
            json={"reaction": reaction},
            auth=True,
        )
        return parse_model(ReactionListResponse, body).reactions
