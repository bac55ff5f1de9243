"""Team schemas — members and invitations."""

from __future__ import annotations

from pydantic import Field

from urbox.schemas.auth import Role
from urbox.schemas.common import ApiModel, OptionalTimestamp


class TeamMember(ApiModel):
    """A company member or a pending invite (``status == "pending"``)."""

    id: str = ""
    email: str = ""
    display_name: str | None = None
    company_id: str = ""
    role: Role = Role.MEMBER
    assigned_inbox_ids: list[str] = Field(default_factory=list)
    status: str = "active"  # pending | active | disabled
    invited_by: str | None = None
    created_at: OptionalTimestamp = None
    updated_at: OptionalTimestamp = None

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    @property
    def name(self) -> str:
        return self.display_name or self.email


class Invitation(ApiModel):
    """Invitation details looked up by token (accept-invite screen)."""

    email: str = ""
    company_name: str | None = None
    inviter_name: str | None = None
    assigned_inbox_ids: list[str] = Field(default_factory=list)
    expires_at: OptionalTimestamp = None


class InvitationSent(ApiModel):
    invite_token: str | None = None
    email_sent: bool = False
    message: str | None = None


class PendingInviteCheck(ApiModel):
    has_pending_invite: bool = False
    company_name: str | None = None
    inviter_name: str | None = None
    token: str | None = None


class InviteToken(ApiModel):
    token: str
    invite_link: str | None = None


class MemberListResponse(ApiModel):
    members: list[TeamMember] = Field(default_factory=list)


class InviteListResponse(ApiModel):
    invites: list[TeamMember] = Field(default_factory=list)
