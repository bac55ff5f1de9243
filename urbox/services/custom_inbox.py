"""Custom inboxes: named views over mail accounts, WhatsApp groups and Slack channels."""

from __future__ import annotations

from urbox.core.errors import ValidationError
from urbox.core.http import ApiClient, parse_list, parse_model
from urbox.core.logging import get_logger
from urbox.schemas.mail import CustomInbox

logger = get_logger(__name__)

BASE = "/api/custom-inbox"


class CustomInboxService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def get_inboxes(self, company_id: str) -> list[CustomInbox]:
        body = await self.api.get(f"{BASE}/company/{company_id}")
        return parse_list(CustomInbox, body)

    async def create_inbox(self, inbox: CustomInbox) -> CustomInbox:
        if not inbox.name.strip():
            raise ValidationError("Inbox name is required", field="name")
        body = await self.api.post(
            BASE,
            json={**inbox.to_update_payload(), "companyId": inbox.company_id},
        )
        created = parse_model(CustomInbox, body)
        logger.info("custom_inbox_created", inbox_id=created.id, company_id=created.company_id)
        return created

    async def update_inbox(self, inbox: CustomInbox) -> None:
        if not inbox.id:
            raise ValidationError("Inbox has no id", field="id")
        await self.api.put(f"{BASE}/{inbox.id}", json=inbox.to_update_payload())

    async def delete_inbox(self, inbox_id: str) -> None:
        await self.api.delete(f"{BASE}/{inbox_id}")
        logger.info("custom_inbox_deleted", inbox_id=inbox_id)
