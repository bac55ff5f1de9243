"""HTTP transport for the URBox REST API.

Wraps one shared ``httpx.AsyncClient`` and turns every response into either
decoded JSON or one of the errors from ``urbox.core.errors``:

- transport, decoding and redirect failures / timeouts -> NetworkError
- non-2xx status or a ``{"success": false, "error": ...}`` envelope -> ApplicationError
- payloads that do not match the expected schema -> ApplicationError
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from urbox.config import get_settings
from urbox.core.errors import ApplicationError, NetworkError, NotAuthenticated
from urbox.core.logging import get_logger, request_id_var

logger = get_logger(__name__)

TokenProvider = Callable[[], Awaitable[str | None]]
ModelT = TypeVar("ModelT", bound=BaseModel)


# ── Payload helpers ──────────────────────────────────────────────────


def _clean_params(params: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Drop None values so optional query params are simply omitted."""
    if not params:
        return None
    return {k: v for k, v in params.items() if v is not None}


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_message(body: Any, response: httpx.Response) -> str:
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            val = body.get(key)
            if isinstance(val, str) and val:
                return val
    if isinstance(body, str) and body.strip():
        return body.strip()[:500]
    return f"Request failed with status {response.status_code}"


def parse_model(model: type[ModelT], payload: Any) -> ModelT:
    """Validate a decoded payload against a response schema."""
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        logger.warning("api_response_malformed", schema=model.__name__, errors=e.error_count())
        raise ApplicationError(
            f"Malformed response for {model.__name__}",
            payload=payload,
        ) from e


def parse_list(model: type[ModelT], payload: Any) -> list[ModelT]:
    """Validate a bare JSON array of items."""
    if not isinstance(payload, list):
        raise ApplicationError(
            f"Malformed response: expected a list of {model.__name__}",
            payload=payload,
        )
    return [parse_model(model, item) for item in payload]


# ── Client ───────────────────────────────────────────────────────────


class ApiClient:
    """Thin async HTTP client bound to one backend and one session.

    Usage::

        async with ApiClient(token_provider=get_id_token) as api:
            body = await api.get("/api/chat/groups", auth=True)
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token_provider: TokenProvider | None = None,
        company_id: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.company_id = company_id if company_id is not None else settings.company_id
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.http_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def url(self, path: str, params: Mapping[str, Any] | None = None) -> str:
        """Absolute URL for a path, e.g. for links opened in an external browser."""
        url = httpx.URL(f"{self.base_url}/{path.lstrip('/')}")
        cleaned = _clean_params(params)
        if cleaned:
            url = url.copy_merge_params(cleaned)
        return str(url)

    async def _headers(self, auth: bool) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.company_id:
            headers["x-company-id"] = self.company_id
        if auth:
            if self._token_provider is None:
                raise NotAuthenticated()
            token = await self._token_provider()
            if not token:
                raise NotAuthenticated()
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        data: Mapping[str, Any] | None = None,
        files: Any = None,
        auth: bool = False,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            NotAuthenticated: ``auth`` is set and no token is available.
            NetworkError: the backend could not be reached.
            ApplicationError: the backend reported a failure.
        """
        headers = await self._headers(auth)
        request_id = str(uuid.uuid4())
        headers["x-request-id"] = request_id
        ctx_token = request_id_var.set(request_id)
        start = time.monotonic()

        try:
            try:
                response = await self._client.request(
                    method,
                    path,
                    params=_clean_params(params),
                    json=json,
                    data=data,
                    files=files,
                    headers=headers,
                    timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
                )
            except httpx.TimeoutException as e:
                logger.warning("api_request_timeout", method=method, path=path)
                raise NetworkError(f"Request timed out: {method} {path}") from e
            except httpx.HTTPError as e:
                # Transport, decoding and redirect failures alike
                logger.warning("api_request_failed", method=method, path=path, error=str(e))
                raise NetworkError(f"Network error: {e}") from e

            body = _decode(response)
            elapsed_ms = int((time.monotonic() - start) * 1000)

            if response.is_error or (isinstance(body, dict) and body.get("success") is False):
                message = _error_message(body, response)
                logger.info(
                    "api_request_rejected",
                    method=method,
                    path=path,
                    status_code=response.status_code,
                    error=message,
                    elapsed_ms=elapsed_ms,
                )
                raise ApplicationError(message, status_code=response.status_code, payload=body)

            logger.debug(
                "api_request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                elapsed_ms=elapsed_ms,
            )
            return body
        finally:
            request_id_var.reset(ctx_token)

    # ── Verb shortcuts ───────────────────────────────────────────

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, **kwargs)
