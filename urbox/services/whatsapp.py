"""WhatsApp session lifecycle, monitored groups and the captured message feed.

Nothing here is pushed live: screens poll. To keep polling cheap the session
status and the first page of each message query are cached for a short TTL
(``WHATSAPP_CACHE_TTL_SECONDS``). Pagination (``start_after``) always hits
the network.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from urbox.config import get_settings
from urbox.core.errors import ApplicationError, UrboxError
from urbox.core.http import ApiClient, parse_model
from urbox.core.logging import get_logger
from urbox.schemas.whatsapp import (
    GroupListResponse,
    MessageCount,
    MessagePage,
    MonitoredGroup,
    MonitoredListResponse,
    QrResponse,
    WhatsAppGroup,
    WhatsAppSession,
)

logger = get_logger(__name__)

BASE = "/api/whatsapp"

# Per-call timeouts in seconds
STATUS_TIMEOUT = 10.0
CONNECT_TIMEOUT = 30.0
LIST_TIMEOUT = 15.0


@dataclass
class _CacheEntry:
    value: Any
    stored_at: float


class WhatsAppService:
    def __init__(
        self,
        api: ApiClient,
        *,
        cache_ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api = api
        self.cache_ttl = cache_ttl if cache_ttl is not None else get_settings().whatsapp_cache_ttl_seconds
        self._clock = clock
        self._status_cache: dict[str, _CacheEntry] = {}
        self._messages_cache: dict[str, _CacheEntry] = {}

    # ── Cache ────────────────────────────────────────────────────

    def _fresh(self, entry: _CacheEntry | None) -> bool:
        return entry is not None and self._clock() - entry.stored_at < self.cache_ttl

    def clear_cache(self, user_id: str) -> None:
        self._status_cache.pop(user_id, None)
        for key in [k for k in self._messages_cache if k.startswith(f"{user_id}_")]:
            del self._messages_cache[key]

    def clear_all_cache(self) -> None:
        self._status_cache.clear()
        self._messages_cache.clear()

    # ── Session ──────────────────────────────────────────────────

    async def get_status(self, user_id: str, *, force_refresh: bool = False) -> WhatsAppSession:
        cached = self._status_cache.get(user_id)
        if not force_refresh and self._fresh(cached):
            return cached.value

        body = await self.api.get(f"{BASE}/status", params={"userId": user_id}, timeout=STATUS_TIMEOUT)
        # Older backends return the status object unwrapped
        data = body.get("data", body) if isinstance(body, dict) else body
        status = parse_model(WhatsAppSession, data)
        self._status_cache[user_id] = _CacheEntry(status, self._clock())
        return status

    async def get_qr_code(self, user_id: str) -> str | None:
        """Current QR code, or None while the backend has none to show."""
        try:
            body = await self.api.get(f"{BASE}/qr", params={"userId": user_id}, timeout=STATUS_TIMEOUT)
        except ApplicationError as e:
            logger.info("whatsapp_qr_unavailable", user_id=user_id, error=e.message)
            return None
        return parse_model(QrResponse, body).qr_code

    async def connect(self, user_id: str, company_id: str) -> str:
        """Start a session; returns the backend's status message."""
        body = await self.api.post(
            f"{BASE}/connect",
            json={"userId": user_id, "companyId": company_id},
            timeout=CONNECT_TIMEOUT,
        )
        self._status_cache.pop(user_id, None)
        logger.info("whatsapp_connect_started", user_id=user_id)
        if isinstance(body, dict) and isinstance(body.get("message"), str):
            return body["message"]
        return "Connection started"

    async def disconnect(self, user_id: str, *, delete_auth: bool = True) -> None:
        await self.api.post(
            f"{BASE}/disconnect",
            json={"userId": user_id, "deleteAuth": delete_auth},
            timeout=STATUS_TIMEOUT,
        )
        self.clear_cache(user_id)
        logger.info("whatsapp_disconnected", user_id=user_id, delete_auth=delete_auth)

    async def cancel(self, user_id: str) -> None:
        """Abort a pending connection (QR scan phase)."""
        self._status_cache.pop(user_id, None)
        await self.api.post(f"{BASE}/cancel", json={"userId": user_id}, timeout=STATUS_TIMEOUT)

    # ── Groups ───────────────────────────────────────────────────

    async def get_groups(self, user_id: str) -> list[WhatsAppGroup]:
        body = await self.api.get(f"{BASE}/groups", params={"userId": user_id}, timeout=LIST_TIMEOUT)
        return parse_model(GroupListResponse, body).groups

    async def get_monitored_groups(self, user_id: str) -> list[MonitoredGroup]:
        body = await self.api.get(f"{BASE}/monitored", params={"userId": user_id}, timeout=STATUS_TIMEOUT)
        return parse_model(MonitoredListResponse, body).groups

    async def toggle_monitoring(
        self,
        user_id: str,
        company_id: str,
        group_id: str,
        group_name: str,
        is_monitoring: bool,
    ) -> None:
        await self.api.post(
            f"{BASE}/monitor",
            json={
                "userId": user_id,
                "companyId": company_id,
                "groupId": group_id,
                "groupName": group_name,
                "isMonitoring": is_monitoring,
            },
            timeout=STATUS_TIMEOUT,
        )
        logger.info("whatsapp_monitoring_toggled", group_id=group_id, is_monitoring=is_monitoring)

    # ── Messages ─────────────────────────────────────────────────

    async def get_messages(
        self,
        *,
        user_id: str | None = None,
        company_id: str | None = None,
        group_id: str | None = None,
        search_query: str | None = None,
        limit: int = 50,
        start_after: str | None = None,
        force_refresh: bool = False,
    ) -> MessagePage:
        """One page of captured messages.

        The first page (no ``start_after``) is served from cache while fresh,
        and a stale cached first page is returned if the request fails.
        Cached pages report ``has_more=False`` and ``cached=True``.
        """
        cache_key = f"{user_id or company_id or 'unknown'}_{group_id or 'all'}_{search_query or ''}"
        first_page = start_after is None
        cached = self._messages_cache.get(cache_key) if first_page else None

        if not force_refresh and self._fresh(cached):
            return MessagePage(messages=cached.value, cached=True)

        try:
            body = await self.api.get(
                f"{BASE}/messages",
                params={
                    "limit": limit,
                    "userId": user_id,
                    "companyId": company_id,
                    "groupId": group_id,
                    "startAfter": start_after,
                    "searchQuery": search_query,
                },
                timeout=LIST_TIMEOUT,
            )
            page = parse_model(MessagePage, body)
        except UrboxError as e:
            if cached is None:
                raise
            logger.warning("whatsapp_messages_stale_cache", cache_key=cache_key, error=str(e))
            return MessagePage(messages=cached.value, cached=True)

        if first_page:
            self._messages_cache[cache_key] = _CacheEntry(page.messages, self._clock())
        logger.debug("whatsapp_messages_fetched", count=len(page.messages), has_more=page.has_more)
        return page

    async def get_message_count(self, user_id: str, since: str | None = None) -> int:
        """Unread badge count. Failures read as zero."""
        try:
            body = await self.api.get(
                f"{BASE}/messages/count",
                params={"userId": user_id, "since": since},
                timeout=STATUS_TIMEOUT,
            )
            return parse_model(MessageCount, body).count
        except UrboxError as e:
            logger.info("whatsapp_count_failed", user_id=user_id, error=str(e))
            return 0
