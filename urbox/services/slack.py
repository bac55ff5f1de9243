"""Slack workspaces, tracked channels and the unified Slack message feed."""

from __future__ import annotations

from collections.abc import Sequence

from urbox.core.errors import ValidationError
from urbox.core.http import ApiClient, parse_list, parse_model
from urbox.core.logging import get_logger
from urbox.schemas.slack import (
    ChannelListResponse,
    SlackAccount,
    SlackChannel,
    SlackMessage,
    SlackMessageListResponse,
)

logger = get_logger(__name__)

BASE = "/api/slack"


def _owner_params(company_id: str | None, user_id: str | None) -> dict[str, str]:
    if company_id:
        return {"companyId": company_id}
    if user_id:
        return {"userId": user_id}
    raise ValidationError("company_id or user_id is required")


class SlackService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    def auth_url(self, company_id: str | None, user_id: str) -> str:
        """OAuth start URL, opened in an external browser.

        Without a company id the backend looks it up from the user.
        """
        return self.api.url(f"{BASE}/auth", {"companyId": company_id or "LOOKUP", "userId": user_id})

    async def get_accounts(
        self,
        company_id: str | None = None,
        user_id: str | None = None,
    ) -> list[SlackAccount]:
        body = await self.api.get(f"{BASE}/accounts", params=_owner_params(company_id, user_id))
        return parse_list(SlackAccount, body)

    async def delete_account(self, account_id: str) -> None:
        await self.api.delete(f"{BASE}/accounts/{account_id}")
        logger.info("slack_account_deleted", account_id=account_id)

    async def get_channels(self, account_id: str) -> list[SlackChannel]:
        body = await self.api.get(f"{BASE}/channels", params={"accountId": account_id})
        return parse_model(ChannelListResponse, body).channels

    async def save_tracked_channels(self, account_id: str, channels: Sequence[SlackChannel]) -> None:
        await self.api.post(
            f"{BASE}/channels/track",
            json={"accountId": account_id, "channels": [c.to_tracked() for c in channels]},
        )
        logger.info("slack_channels_tracked", account_id=account_id, count=len(channels))

    async def get_messages(
        self,
        company_id: str,
        limit: int = 20,
        before: str | None = None,
    ) -> list[SlackMessage]:
        """Newest messages across tracked channels; ``before`` pages back in time."""
        body = await self.api.get(
            f"{BASE}/messages",
            params={"companyId": company_id, "limit": limit, "before": before},
        )
        return parse_model(SlackMessageListResponse, body).messages
