"""Auth and profile schemas."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from urbox.schemas.common import ApiModel, OptionalTimestamp


class Role(str, Enum):
    OWNER = "owner"
    MEMBER = "member"


class AuthResponse(ApiModel):
    """Result of signup / login / accept-invite.

    ``custom_token`` is exchanged with the identity provider for a session.
    """

    success: bool = True
    custom_token: str | None = None
    user_id: str | None = None
    company_id: str | None = None
    role: Role | None = None
    message: str | None = None


class UserProfile(ApiModel):
    id: str = ""
    email: str = ""
    display_name: str = ""
    company_id: str = ""
    role: Role = Role.MEMBER
    status: str = "active"
    assigned_inbox_ids: list[str] = Field(default_factory=list)
    invited_by: str | None = None
    phone_number: str | None = None
    avatar_url: str | None = None
    timezone: str | None = None
    language: str | None = None
    mfa_enabled: bool = False
    email_notifications: bool = True
    push_notifications: bool = True
    preferences: dict[str, Any] = Field(default_factory=dict)
    created_at: OptionalTimestamp = None
    updated_at: OptionalTimestamp = None
    last_login_at: OptionalTimestamp = None

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class UserProfileResponse(ApiModel):
    user: UserProfile
