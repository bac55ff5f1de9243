"""Plan status and Stripe checkout/portal sessions.

Checkout and portal calls return a URL that the caller opens in an external
browser; the plan is re-read afterwards with ``sync_subscription``.
"""

from __future__ import annotations

from urbox.core.http import ApiClient, parse_model
from urbox.core.logging import get_logger
from urbox.schemas.billing import (
    AccessCheck,
    CompanyPlan,
    FeatureAccess,
    InboxLimit,
    SessionUrl,
    SubscriptionSync,
)

logger = get_logger(__name__)

PAYMENT_BASE = "/api/payment"
SUBSCRIPTION_BASE = "/api/subscription"


class BillingService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    # ── Payment ──────────────────────────────────────────────────

    async def create_checkout_session(
        self,
        company_id: str,
        success_url: str,
        cancel_url: str,
    ) -> str:
        body = await self.api.post(
            f"{PAYMENT_BASE}/create-checkout-session",
            json={"companyId": company_id, "successUrl": success_url, "cancelUrl": cancel_url},
        )
        logger.info("billing_checkout_created", company_id=company_id)
        return parse_model(SessionUrl, body).url

    async def create_portal_session(self, company_id: str, return_url: str | None = None) -> str:
        body = await self.api.post(
            f"{PAYMENT_BASE}/create-portal-session",
            json={"companyId": company_id, "returnUrl": return_url},
        )
        return parse_model(SessionUrl, body).url

    async def sync_subscription(self, company_id: str) -> SubscriptionSync:
        body = await self.api.post(
            f"{PAYMENT_BASE}/sync-subscription",
            json={"companyId": company_id},
        )
        result = parse_model(SubscriptionSync, body)
        logger.info("billing_subscription_synced", company_id=company_id, status=result.status)
        return result

    # ── Subscription ─────────────────────────────────────────────

    async def get_company_plan(self, company_id: str) -> CompanyPlan:
        body = await self.api.get(f"{SUBSCRIPTION_BASE}/plan", params={"companyId": company_id})
        return parse_model(CompanyPlan, body)

    async def check_access(self, company_id: str) -> AccessCheck:
        body = await self.api.get(f"{SUBSCRIPTION_BASE}/check-access", params={"companyId": company_id})
        return parse_model(AccessCheck, body)

    async def check_feature_access(self, company_id: str, feature: str) -> FeatureAccess:
        body = await self.api.get(
            f"{SUBSCRIPTION_BASE}/feature-access",
            params={"companyId": company_id, "feature": feature},
        )
        if isinstance(body, dict):
            body = {"feature": feature, **body}
        return parse_model(FeatureAccess, body)

    async def get_inbox_limit(self, company_id: str) -> InboxLimit:
        body = await self.api.get(f"{SUBSCRIPTION_BASE}/inbox-limit", params={"companyId": company_id})
        return parse_model(InboxLimit, body)
