"""Team invitations and member management."""

from __future__ import annotations

from collections.abc import Sequence

from urbox.core.errors import UrboxError, ValidationError
from urbox.core.http import ApiClient, parse_model
from urbox.core.logging import get_logger
from urbox.schemas.auth import AuthResponse
from urbox.schemas.common import ActionResult
from urbox.schemas.team import (
    Invitation,
    InvitationSent,
    InviteListResponse,
    InviteToken,
    MemberListResponse,
    PendingInviteCheck,
    TeamMember,
)

logger = get_logger(__name__)

BASE = "/api/team"


class TeamService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    # ── Invitations ──────────────────────────────────────────────

    async def send_invitation(
        self,
        email: str,
        company_id: str,
        invited_by: str,
        assigned_inbox_ids: Sequence[str] = (),
    ) -> InvitationSent:
        email = email.strip().lower()
        if "@" not in email:
            raise ValidationError("A valid email is required", field="email")
        body = await self.api.post(
            f"{BASE}/invite",
            json={
                "email": email,
                "companyId": company_id,
                "invitedBy": invited_by,
                "assignedInboxIds": list(assigned_inbox_ids),
            },
        )
        result = parse_model(InvitationSent, body)
        logger.info("team_invite_sent", company_id=company_id, email_sent=result.email_sent)
        return result

    async def get_invitation(self, token: str) -> Invitation:
        body = await self.api.get(f"{BASE}/invite/{token}")
        return parse_model(Invitation, body)

    async def check_pending_invite(self, email: str) -> PendingInviteCheck:
        """Whether ``email`` has an open invitation. Never raises: failures read as "no invite"."""
        try:
            body = await self.api.post(
                f"{BASE}/check-invite",
                json={"email": email.strip().lower()},
            )
            return parse_model(PendingInviteCheck, body)
        except UrboxError as e:
            logger.info("team_invite_check_failed", error=str(e))
            return PendingInviteCheck(has_pending_invite=False)

    async def accept_invitation(
        self,
        token: str,
        password: str,
        display_name: str | None = None,
    ) -> AuthResponse:
        if not token or not password:
            raise ValidationError("Token and password are required")
        body = await self.api.post(
            f"{BASE}/accept-invite",
            json={"token": token, "password": password, "displayName": display_name},
        )
        return parse_model(AuthResponse, body)

    async def cancel_invite(self, invite_id: str) -> ActionResult:
        body = await self.api.delete(f"{BASE}/cancel-invite/{invite_id}")
        return parse_model(ActionResult, body)

    async def resend_invite(self, invite_id: str) -> ActionResult:
        body = await self.api.post(f"{BASE}/resend-invite", json={"inviteId": invite_id})
        return parse_model(ActionResult, body)

    async def get_pending_invites(self, company_id: str) -> list[TeamMember]:
        body = await self.api.get(f"{BASE}/pending-invites/{company_id}")
        return parse_model(InviteListResponse, body).invites

    async def get_invite_token(self, invite_id: str) -> InviteToken:
        body = await self.api.get(f"{BASE}/invite-token/{invite_id}")
        return parse_model(InviteToken, body)

    # ── Members ──────────────────────────────────────────────────

    async def get_members(self, company_id: str) -> list[TeamMember]:
        body = await self.api.get(f"{BASE}/members/{company_id}")
        return parse_model(MemberListResponse, body).members

    async def update_member_inboxes(self, member_id: str, inbox_ids: Sequence[str]) -> ActionResult:
        body = await self.api.post(
            f"{BASE}/update-member-inboxes",
            json={"memberId": member_id, "inboxIds": list(inbox_ids)},
        )
        return parse_model(ActionResult, body)

    async def _member_action(self, action: str, member_id: str) -> ActionResult:
        body = await self.api.post(f"{BASE}/{action}", json={"memberId": member_id})
        logger.info("team_member_updated", action=action, member_id=member_id)
        return parse_model(ActionResult, body)

    async def remove_member(self, member_id: str) -> ActionResult:
        return await self._member_action("remove-member", member_id)

    async def disable_member(self, member_id: str) -> ActionResult:
        return await self._member_action("disable-member", member_id)

    async def enable_member(self, member_id: str) -> ActionResult:
        return await self._member_action("enable-member", member_id)
