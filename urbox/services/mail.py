"""Connected mail accounts and the shared inbox.

Covers OAuth connect links, IMAP accounts, fetching pages of mail across all
connected accounts and read receipts.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from urllib.parse import quote

from urbox.core.errors import UrboxError, ValidationError
from urbox.core.http import ApiClient, parse_list, parse_model
from urbox.core.logging import get_logger
from urbox.schemas.mail import (
    Email,
    EmailAccount,
    EmailPage,
    ImapConfig,
    ImapTestResult,
    InboxItem,
)
from urbox.schemas.whatsapp import WhatsAppMessage

logger = get_logger(__name__)

BASE = "/api/email"

OAUTH_PROVIDERS = ("google", "microsoft")


def _validate_imap(config: ImapConfig) -> None:
    if not config.host.strip():
        raise ValidationError("IMAP host is required", field="host")
    if not 0 < config.port < 65536:
        raise ValidationError("IMAP port is out of range", field="port")
    if "@" not in config.email:
        raise ValidationError("A valid email is required", field="email")


class MailService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    def oauth_url(self, provider: str, company_id: str, user_id: str) -> str:
        """Start URL of the provider's OAuth flow, opened in an external browser."""
        if provider not in OAUTH_PROVIDERS:
            raise ValidationError(f"Unsupported mail provider: {provider}", field="provider")
        return self.api.url(f"{BASE}/auth/{provider}", {"companyId": company_id, "userId": user_id})

    async def test_imap(self, config: ImapConfig) -> ImapTestResult:
        _validate_imap(config)
        body = await self.api.post(
            f"{BASE}/imap/test",
            json={
                "host": config.host,
                "port": config.port,
                "email": config.email,
                "password": config.password,
                "tls": config.tls,
            },
        )
        return parse_model(ImapTestResult, body)

    async def add_imap_account(self, company_id: str, user_id: str, config: ImapConfig) -> None:
        _validate_imap(config)
        await self.api.post(
            f"{BASE}/imap/add",
            json={
                "companyId": company_id,
                "userId": user_id,
                "name": config.name or config.email,
                "host": config.host,
                "port": config.port,
                "email": config.email,
                "password": config.password,
                "tls": config.tls,
            },
        )
        logger.info("mail_imap_account_added", company_id=company_id, host=config.host)

    async def get_accounts(
        self,
        company_id: str | None = None,
        user_id: str | None = None,
    ) -> list[EmailAccount]:
        if company_id:
            params = {"companyId": company_id}
        elif user_id:
            params = {"userId": user_id}
        else:
            raise ValidationError("company_id or user_id is required")
        body = await self.api.get(f"{BASE}/accounts", params=params)
        return parse_list(EmailAccount, body)

    async def delete_account(self, account_id: str) -> None:
        await self.api.delete(f"{BASE}/accounts/{account_id}")
        logger.info("mail_account_deleted", account_id=account_id)

    # ── Inbox ────────────────────────────────────────────────────

    async def fetch_emails(
        self,
        accounts: Sequence[EmailAccount],
        offsets: Mapping[str, str | int] | None = None,
    ) -> EmailPage:
        """Fetch one page from every account, merged newest first.

        ``offsets`` is the previous page's ``next_offsets()``; omit it for the
        first page. A failing account lands in ``EmailPage.errors`` instead of
        failing the whole call.
        """
        if not accounts:
            raise ValidationError("No email accounts connected", field="accounts")
        body = await self.api.post(
            BASE,
            json={
                "accounts": [account.to_payload() for account in accounts],
                "offsets": dict(offsets or {}),
            },
        )
        page = parse_model(EmailPage, body)
        for err in page.errors:
            logger.warning("mail_account_fetch_failed", account=err.account, error=err.error)
        logger.debug("mail_emails_fetched", count=len(page.emails), accounts=len(accounts))
        return page

    async def mark_as_read(
        self,
        email_id: str,
        account: EmailAccount,
        *,
        message_id: str | None = None,
        uid: str | None = None,
    ) -> bool:
        """Best-effort read receipt. Failures are logged and reported as False."""
        try:
            await self.api.post(
                f"{BASE}/{quote(email_id, safe='')}/read",
                json={"account": account.to_payload(), "messageId": message_id, "uid": uid},
            )
        except UrboxError as e:
            logger.info("mail_mark_read_failed", email_id=email_id, error=str(e))
            return False
        return True


def build_inbox(
    emails: Iterable[Email] = (),
    whatsapp_messages: Iterable[WhatsAppMessage] = (),
) -> list[InboxItem]:
    """Unified inbox rows from both sources, newest first."""
    items = [InboxItem.from_email(e) for e in emails]
    items.extend(InboxItem.from_whatsapp(m) for m in whatsapp_messages)
    items.sort(key=lambda item: item.date, reverse=True)
    return items
