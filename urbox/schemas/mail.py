"""Mail account, inbox and custom inbox schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from urbox.schemas.common import ApiModel, OptionalTimestamp, Timestamp, utcnow
from urbox.schemas.whatsapp import WhatsAppMessage

DEFAULT_INBOX_COLOR = 0xFF6366F1  # indigo


# ── Mail Account ──


class EmailAccount(ApiModel):
    """A connected mailbox. Unknown fields are kept so the account can be sent back for fetching."""

    model_config = ConfigDict(extra="allow")

    id: str
    email: str = ""
    name: str | None = None
    provider: str = ""  # gmail-oauth | microsoft-oauth | imap
    status: str = "active"
    company_id: str = ""
    user_id: str | None = None
    created_at: OptionalTimestamp = None

    @property
    def key(self) -> str:
        """Key the backend uses for this account's pagination offsets."""
        return self.id or self.email


class ImapConfig(ApiModel):
    """IMAP credentials for a custom mail server."""

    host: str
    port: int = 993
    email: str
    password: str
    tls: bool = True
    name: str | None = None  # display name for the account


class ImapTestResult(ApiModel):
    success: bool = True
    message: str | None = None


# ── Inbox ──

GMAIL_CATEGORIES = (
    "CATEGORY_PERSONAL",
    "CATEGORY_SOCIAL",
    "CATEGORY_PROMOTIONS",
    "CATEGORY_UPDATES",
    "CATEGORY_FORUMS",
)


class EmailAttachment(ApiModel):
    filename: str = "Unnamed"
    content_type: str = "application/octet-stream"
    size: int = 0


class Email(ApiModel):
    id: str = ""
    message_id: str = ""
    thread_id: str = ""
    uid: str | None = None
    account_id: str | None = None
    account_name: str = ""
    account_type: str = ""
    subject: str = "(No Subject)"
    from_: str = Field(default="Unknown", alias="from")
    to: str = ""
    date: Timestamp = Field(default_factory=utcnow)
    text: str = ""
    html: str = ""
    is_read: bool = False
    snippet: str = ""
    labels: list[str] = Field(default_factory=list)
    attachments: list[EmailAttachment] = Field(default_factory=list)

    @field_validator("uid", mode="before")
    @classmethod
    def _uid_as_str(cls, value: Any) -> Any:
        # IMAP uids arrive as numbers
        return str(value) if isinstance(value, int) else value

    def has_category(self, category: str) -> bool:
        needle = category.upper()
        return any(needle in label.upper() for label in self.labels)

    @property
    def primary_category(self) -> str | None:
        """Gmail tab the message belongs to (``PROMOTIONS``, ``SOCIAL`` ...), if any."""
        for category in GMAIL_CATEGORIES:
            if category in self.labels:
                return category.removeprefix("CATEGORY_")
        return None


class AccountPagination(ApiModel):
    """Per-account cursor: a provider page token (Gmail, Microsoft) or an IMAP offset."""

    next_page_token: str | None = None
    next_offset: int | None = None
    has_more: bool = False

    @property
    def cursor(self) -> str | int | None:
        if not self.has_more:
            return None
        return self.next_page_token if self.next_page_token is not None else self.next_offset


class AccountFetchError(ApiModel):
    account: str = ""
    error: str = ""


class EmailPage(ApiModel):
    """Emails merged across accounts, newest first, plus each account's cursor."""

    emails: list[Email] = Field(default_factory=list)
    pagination: dict[str, AccountPagination] = Field(default_factory=dict)
    errors: list[AccountFetchError] = Field(default_factory=list)

    @property
    def has_more(self) -> bool:
        return any(p.has_more for p in self.pagination.values())

    def next_offsets(self) -> dict[str, str | int]:
        """Offsets map for the following ``fetch_emails`` call."""
        return {key: p.cursor for key, p in self.pagination.items() if p.cursor is not None}


class InboxItemType(str, Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"


class InboxItem(BaseModel):
    """One row of the unified inbox, backed by an email or a WhatsApp message."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: InboxItemType
    date: datetime
    title: str
    subtitle: str
    snippet: str
    is_read: bool = True
    email: Email | None = None
    whatsapp_message: WhatsAppMessage | None = None

    @classmethod
    def from_email(cls, email: Email) -> InboxItem:
        return cls(
            id=email.id,
            type=InboxItemType.EMAIL,
            date=email.date,
            title=email.from_ or "(No Sender)",
            subtitle=email.subject or "(No Subject)",
            snippet=email.snippet,
            is_read=email.is_read,
            email=email,
        )

    @classmethod
    def from_whatsapp(cls, message: WhatsAppMessage) -> InboxItem:
        if message.has_media:
            kind = (message.media_type or "file").split("/")[0]
            snippet = f"[Media: {kind}]"
        else:
            snippet = message.body
        return cls(
            id=message.id,
            type=InboxItemType.WHATSAPP,
            date=message.timestamp,
            title=message.group_name,
            subtitle=f"{message.sender_name}: ",
            snippet=snippet,
            whatsapp_message=message,
        )


# ── Custom Inbox ──


class CustomInbox(ApiModel):
    """A named view over several email accounts, WhatsApp groups and Slack channels."""

    id: str = ""
    name: str
    company_id: str = ""
    account_ids: list[str] = Field(default_factory=list)
    whatsapp_group_ids: list[str] = Field(default_factory=list)
    slack_channel_ids: list[str] = Field(default_factory=list)
    account_filters: dict[str, list[str]] = Field(default_factory=dict)  # accountId -> sender filters
    color: int = DEFAULT_INBOX_COLOR
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)

    def to_update_payload(self) -> dict[str, object]:
        return {
            "name": self.name,
            "accountIds": self.account_ids,
            "whatsappGroupIds": self.whatsapp_group_ids,
            "slackChannelIds": self.slack_channel_ids,
            "accountFilters": self.account_filters,
            "color": self.color,
        }
