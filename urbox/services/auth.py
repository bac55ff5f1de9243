"""Account signup/login and profile settings."""

from __future__ import annotations

from typing import Any

from urbox.core.errors import ValidationError
from urbox.core.http import ApiClient, parse_model
from urbox.core.logging import get_logger
from urbox.schemas.auth import AuthResponse, UserProfile, UserProfileResponse
from urbox.schemas.common import ActionResult

logger = get_logger(__name__)

BASE = "/api/auth"

MIN_PASSWORD_LENGTH = 6


def _require(value: str | None, field: str, label: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{label} is required", field=field)
    return value.strip()


class AuthService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def signup(
        self,
        email: str,
        password: str,
        display_name: str,
        company_name: str | None = None,
    ) -> AuthResponse:
        """Create an account. ``company_name`` is needed unless the email has a pending invite."""
        email = _require(email, "email", "Email").lower()
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="password",
            )
        body = await self.api.post(
            f"{BASE}/signup",
            json={
                "email": email,
                "password": password,
                "displayName": _require(display_name, "display_name", "Name"),
                "companyName": company_name,
            },
        )
        result = parse_model(AuthResponse, body)
        logger.info("auth_signup_completed", user_id=result.user_id, company_id=result.company_id)
        return result

    async def login(self, email: str, password: str) -> AuthResponse:
        body = await self.api.post(
            f"{BASE}/login",
            json={"email": _require(email, "email", "Email").lower(), "password": password},
        )
        result = parse_model(AuthResponse, body)
        logger.info("auth_login_completed", user_id=result.user_id)
        return result

    async def get_user_profile(self, user_id: str) -> UserProfile:
        body = await self.api.get(f"{BASE}/user/{user_id}")
        return parse_model(UserProfileResponse, body).user

    # ── Settings ─────────────────────────────────────────────────

    async def update_profile(
        self,
        user_id: str,
        *,
        display_name: str | None = None,
        phone_number: str | None = None,
        timezone: str | None = None,
        language: str | None = None,
    ) -> ActionResult:
        body = await self.api.post(
            f"{BASE}/update-profile",
            json={
                "userId": user_id,
                "displayName": display_name,
                "phoneNumber": phone_number,
                "timezone": timezone,
                "language": language,
            },
        )
        return parse_model(ActionResult, body)

    async def update_preferences(
        self,
        user_id: str,
        *,
        preferences: dict[str, Any] | None = None,
        email_notifications: bool | None = None,
        push_notifications: bool | None = None,
    ) -> ActionResult:
        body = await self.api.post(
            f"{BASE}/update-preferences",
            json={
                "userId": user_id,
                "preferences": preferences,
                "emailNotifications": email_notifications,
                "pushNotifications": push_notifications,
            },
        )
        return parse_model(ActionResult, body)

    async def change_password(self, user_id: str, new_password: str) -> ActionResult:
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="new_password",
            )
        body = await self.api.post(
            f"{BASE}/change-password",
            json={"userId": user_id, "newPassword": new_password},
        )
        return parse_model(ActionResult, body)

    async def delete_account(self, user_id: str) -> ActionResult:
        body = await self.api.post(f"{BASE}/delete-account", json={"userId": user_id})
        logger.info("auth_account_deleted", user_id=user_id)
        return parse_model(ActionResult, body)
