"""Billing schemas — plan status, feature access, Stripe session URLs."""

from __future__ import annotations

from enum import Enum

from urbox.schemas.common import ApiModel

UNLIMITED = -1


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"
    PRO_FREE = "pro-free"  # forever-free pro accounts


class CompanyPlan(ApiModel):
    plan: Plan = Plan.FREE
    is_free: bool = True
    is_pro_free: bool = False
    subscription_status: str = "none"  # active | canceled | none | special
    has_pro_access: bool = False
    can_upgrade: bool = True
    company_name: str | None = None

    @property
    def inbox_limit(self) -> int:
        return UNLIMITED if self.has_pro_access else 1


class AccessCheck(ApiModel):
    has_pro_access: bool = False
    plan: Plan = Plan.FREE
    is_pro_free: bool = False
    subscription_status: str = "none"


class FeatureAccess(ApiModel):
    feature: str
    has_access: bool = False


class InboxLimit(ApiModel):
    limit: int = 1
    can_create_more: bool = False
    current_count: int = 0


class SessionUrl(ApiModel):
    url: str


class SubscriptionSync(ApiModel):
    """Result of re-reading the subscription from Stripe."""

    status: str = "none"  # no_customer | none | active | trialing | canceled ...
    is_free: bool = True
