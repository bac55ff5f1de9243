"""Pydantic schemas for backend request/response validation."""

from urbox.schemas.common import ActionResult, ApiModel
from urbox.schemas.auth import AuthResponse, Role, UserProfile
from urbox.schemas.team import (
    Invitation,
    InvitationSent,
    PendingInviteCheck,
    TeamMember,
)
from urbox.schemas.chat import (
    ChatAttachment,
    ChatGroup,
    ChatMessage,
    ChatReaction,
    MessageType,
    ReactionUpdate,
)
from urbox.schemas.storage import FolderRecord, StorageFile
from urbox.schemas.billing import (
    AccessCheck,
    CompanyPlan,
    FeatureAccess,
    InboxLimit,
    Plan,
)
from urbox.schemas.slack import SlackAccount, SlackChannel, SlackMessage
from urbox.schemas.whatsapp import (
    MessagePage,
    MonitoredGroup,
    SessionStatus,
    WhatsAppGroup,
    WhatsAppMessage,
    WhatsAppSession,
)
from urbox.schemas.mail import (
    CustomInbox,
    Email,
    EmailAccount,
    EmailPage,
    ImapConfig,
    InboxItem,
    InboxItemType,
)
from urbox.schemas.assignment import Assignment, AssignmentStatus

__all__ = [
    "ActionResult",
    "ApiModel",
    "AuthResponse",
    "Role",
    "UserProfile",
    "Invitation",
    "InvitationSent",
    "PendingInviteCheck",
    "TeamMember",
    "ChatAttachment",
    "ChatGroup",
    "ChatMessage",
    "ChatReaction",
    "MessageType",
    "ReactionUpdate",
    "FolderRecord",
    "StorageFile",
    "AccessCheck",
    "CompanyPlan",
    "FeatureAccess",
    "InboxLimit",
    "Plan",
    "SlackAccount",
    "SlackChannel",
    "SlackMessage",
    "MessagePage",
    "MonitoredGroup",
    "SessionStatus",
    "WhatsAppGroup",
    "WhatsAppMessage",
    "WhatsAppSession",
    "CustomInbox",
    "EmailAccount",
    "ImapConfig",
    "Email",
    "EmailPage",
    "InboxItem",
    "InboxItemType",
    "Assignment",
    "AssignmentStatus",
]
