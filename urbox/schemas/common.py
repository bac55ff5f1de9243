"""Shared schema base and field types."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(UTC)


def _coerce_timestamp(value: Any) -> Any:
    """Accept ISO strings, epoch numbers and Firestore ``{_seconds, _nanoseconds}``.

    A missing value becomes "now", matching what the backend's clients assume
    for freshly created documents whose server timestamp is not resolved yet.
    """
    if value is None or value == "":
        return datetime.now(UTC)
    if isinstance(value, dict):
        seconds = value.get("_seconds", value.get("seconds"))
        nanos = value.get("_nanoseconds", value.get("nanoseconds", 0)) or 0
        if seconds is not None:
            return datetime.fromtimestamp(seconds + nanos / 1e9, tz=UTC)
    return value


def _coerce_optional_timestamp(value: Any) -> Any:
    if value is None or value == "":
        return None
    return _coerce_timestamp(value)


Timestamp = Annotated[datetime, BeforeValidator(_coerce_timestamp)]
OptionalTimestamp = Annotated[datetime | None, BeforeValidator(_coerce_optional_timestamp)]


class ApiModel(BaseModel):
    """Base for backend payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_payload(self) -> dict[str, Any]:
        """Serialize back to the backend's camelCase JSON shape."""
        return self.model_dump(mode="json", by_alias=True)


class ActionResult(ApiModel):
    """Generic ``{success, message}`` acknowledgement."""

    success: bool = True
    message: str | None = None
