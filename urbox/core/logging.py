"""Structured logging for the client SDK (structlog).

The SDK is embedded in a host application, so it logs through stdlib loggers
under the ``urbox`` namespace and leaves handler setup to the host unless
``setup_logging()`` is called. When it is:

- JSON lines by default, pretty console output when ``DEBUG`` is set
- the session context (company_id, user_id, group_id, request_id) on every line
- credentials (passwords, tokens) masked before rendering
- Socket.IO / httpx chatter held at WARNING
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import IO

import structlog

from urbox.config import get_settings

# ── Context variables (bound per session / per request) ──────────────

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
company_id_var: ContextVar[str | None] = ContextVar("company_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
group_id_var: ContextVar[str | None] = ContextVar("group_id", default=None)

_CONTEXT_VARS = (
    (request_id_var, "request_id"),
    (company_id_var, "company_id"),
    (user_id_var, "user_id"),
    (group_id_var, "group_id"),
)

SENSITIVE_KEYS = frozenset({"password", "token", "id_token", "custom_token", "authorization"})
REDACTED = "***"

NOISY_LOGGERS = ("httpx", "httpcore", "socketio.client", "engineio.client")


def _inject_context_vars(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> dict:
    """Add the session context. Explicit fields on the call win."""
    for var, key in _CONTEXT_VARS:
        val = var.get(None)
        if val is not None:
            event_dict.setdefault(key, val)
    return event_dict


def _redact_secrets(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> dict:
    for key in event_dict.keys() & SENSITIVE_KEYS:
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


@contextmanager
def bind_session(company_id: str | None = None, user_id: str | None = None) -> Iterator[None]:
    """Scope log lines in the block to a tenant and user, restoring the previous values after."""
    company_token = company_id_var.set(company_id)
    user_token = user_id_var.set(user_id)
    try:
        yield
    finally:
        user_id_var.reset(user_token)
        company_id_var.reset(company_token)


def setup_logging(*, stream: IO[str] | None = None, configure_root: bool = True) -> None:
    """Configure structlog + stdlib logging.

    Scripts and standalone tools call this once at startup. A host that owns
    its own logging passes ``configure_root=False``: only the ``urbox`` logger
    then gets a handler, and it stops propagating to the host's root.
    """
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _inject_context_vars,
        _redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    target = logging.getLogger() if configure_root else logging.getLogger("urbox")
    target.handlers.clear()
    target.addHandler(handler)
    target.setLevel(log_level)
    if not configure_root:
        target.propagate = False

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance."""
    return structlog.get_logger(name)
