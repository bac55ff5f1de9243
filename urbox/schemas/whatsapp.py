"""WhatsApp integration schemas."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from urbox.schemas.common import ApiModel, OptionalTimestamp, Timestamp, utcnow


class SessionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    INITIALIZING = "initializing"
    QR_PENDING = "qr_pending"
    AUTHENTICATING = "authenticating"
    CONNECTED = "connected"
    ERROR = "error"

    @classmethod
    def _missing_(cls, value: object) -> SessionStatus:
        return cls.DISCONNECTED


_STATUS_MESSAGES = {
    SessionStatus.INITIALIZING: "Initializing WhatsApp connection...",
    SessionStatus.QR_PENDING: "Scan QR code with WhatsApp",
    SessionStatus.AUTHENTICATING: "Authenticating...",
}


class WhatsAppSession(ApiModel):
    status: SessionStatus = SessionStatus.DISCONNECTED
    phone: str | None = None
    name: str | None = None
    qr_code: str | None = None
    error: str | None = None
    disconnect_reason: str | None = None
    connected_at: OptionalTimestamp = None
    last_sync: OptionalTimestamp = None

    @property
    def is_connected(self) -> bool:
        return self.status == SessionStatus.CONNECTED

    @property
    def is_connecting(self) -> bool:
        return self.status in (
            SessionStatus.INITIALIZING,
            SessionStatus.QR_PENDING,
            SessionStatus.AUTHENTICATING,
        )

    @property
    def needs_qr(self) -> bool:
        return self.status == SessionStatus.QR_PENDING

    @property
    def status_message(self) -> str:
        if self.status == SessionStatus.CONNECTED:
            return f"Connected as {self.name or self.phone or 'Unknown'}"
        if self.status == SessionStatus.ERROR:
            return self.error or "Connection error"
        if self.status == SessionStatus.DISCONNECTED:
            return self.disconnect_reason or "Disconnected"
        return _STATUS_MESSAGES[self.status]


class WhatsAppGroup(ApiModel):
    id: str
    name: str = ""
    participant_count: int | None = None
    is_monitored: bool = False


class MonitoredGroup(ApiModel):
    id: str = ""
    group_id: str
    group_name: str = ""
    company_id: str = ""
    user_id: str = ""
    is_monitoring: bool = True


class WhatsAppMessage(ApiModel):
    id: str
    user_id: str = ""
    company_id: str = ""
    group_id: str = ""
    group_name: str = ""
    sender_name: str = ""
    sender_number: str = ""
    body: str = ""
    has_media: bool = False
    media_type: str | None = None
    is_from_me: bool = False
    timestamp: Timestamp = Field(default_factory=utcnow)
    created_at: Timestamp = Field(default_factory=utcnow)


class MessagePage(ApiModel):
    """One page of messages; pass ``last_doc_id`` as ``start_after`` for the next."""

    messages: list[WhatsAppMessage] = Field(default_factory=list)
    has_more: bool = False
    last_doc_id: str | None = None
    cached: bool = Field(default=False, exclude=True)


# ── Response envelopes ──


class StatusResponse(ApiModel):
    data: WhatsAppSession = Field(default_factory=WhatsAppSession)


class QrResponse(ApiModel):
    qr_code: str | None = None


class GroupListResponse(ApiModel):
    groups: list[WhatsAppGroup] = Field(default_factory=list)


class MonitoredListResponse(ApiModel):
    groups: list[MonitoredGroup] = Field(default_factory=list)


class MessageCount(ApiModel):
    count: int = 0
