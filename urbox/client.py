"""Entry point wiring one HTTP client, one realtime connection and every service.

Usage::

    async with UrboxClient(token_provider=get_id_token, company_id=cid) as client:
        groups = await client.chat.get_groups()
        await client.realtime.connect()
        session = client.chat_session(user_id=uid, on_error=print)
        await session.open(groups[0].id)
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager

import httpx

from urbox.core.chat_sync import ChatSession
from urbox.core.http import ApiClient, TokenProvider
from urbox.core.logging import bind_session, company_id_var, get_logger, user_id_var
from urbox.core.realtime import RealtimeConnection
from urbox.services.assignment import AssignmentService
from urbox.services.auth import AuthService
from urbox.services.billing import BillingService
from urbox.services.chat import ChatService
from urbox.services.custom_inbox import CustomInboxService
from urbox.services.mail import MailService
from urbox.services.slack import SlackService
from urbox.services.storage import StorageService
from urbox.services.team import TeamService
from urbox.services.whatsapp import WhatsAppService

logger = get_logger(__name__)


class UrboxClient:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        token_provider: TokenProvider | None = None,
        company_id: str | None = None,
        user_id: str | None = None,
        realtime: RealtimeConnection | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api = ApiClient(
            base_url,
            token_provider=token_provider,
            company_id=company_id,
            transport=transport,
        )
        self.realtime = realtime or RealtimeConnection()
        self.user_id = user_id

        self.auth = AuthService(self.api)
        self.team = TeamService(self.api)
        self.chat = ChatService(self.api)
        self.storage = StorageService(self.api)
        self.billing = BillingService(self.api)
        self.slack = SlackService(self.api)
        self.whatsapp = WhatsAppService(self.api)
        self.mail = MailService(self.api)
        self.custom_inboxes = CustomInboxService(self.api)
        self.assignments = AssignmentService(self.api)

        if self.api.company_id:
            company_id_var.set(self.api.company_id)
        if user_id:
            user_id_var.set(user_id)

    @property
    def company_id(self) -> str | None:
        return self.api.company_id

    def set_company(self, company_id: str | None) -> None:
        """Scope subsequent calls to another tenant (after login or accepting an invite)."""
        self.api.company_id = company_id
        company_id_var.set(company_id)

    def log_context(self) -> AbstractContextManager[None]:
        """Bind this client's tenant and user to log lines emitted inside the block.

        Useful when one process drives several clients from separate tasks.
        """
        return bind_session(self.company_id, self.user_id)

    def chat_session(
        self,
        *,
        user_id: str | None = None,
        user_name: str = "Me",
        on_error: Callable[[str], None] | None = None,
        on_scroll_to_latest: Callable[[], None] | None = None,
    ) -> ChatSession:
        uid = user_id or self.user_id
        if not uid:
            raise ValueError("user_id is required for a chat session")
        return ChatSession(
            self.chat,
            self.realtime,
            user_id=uid,
            user_name=user_name,
            on_error=on_error,
            on_scroll_to_latest=on_scroll_to_latest,
        )

    async def aclose(self) -> None:
        await self.realtime.disconnect()
        await self.api.aclose()
        logger.debug("client_closed")

    async def __aenter__(self) -> UrboxClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
