"""Error taxonomy shared by every service call.

- NetworkError: connectivity/timeout, never reached a backend answer
- ApplicationError: the backend answered with an error (or an unreadable payload)
- ValidationError: client-side input validation, raised before any network call
- NotAuthenticated: an authenticated call was attempted without a session token
"""

from __future__ import annotations

from typing import Any

GENERIC_ERROR_MESSAGE = "An error occurred, please try again"


class UrboxError(Exception):
    """Base class for all client errors."""

    def user_message(self) -> str:
        return GENERIC_ERROR_MESSAGE


class NetworkError(UrboxError):
    """Raised when the backend could not be reached."""

    def __init__(self, message: str = "Network error") -> None:
        super().__init__(message)


class ApplicationError(UrboxError):
    """Raised when the backend reports a failure.

    ``message`` is the backend's ``error`` field when present and is meant to
    be shown verbatim.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)

    def user_message(self) -> str:
        return self.message


class ValidationError(UrboxError):
    """Raised for invalid user input; never reaches the network."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)

    def user_message(self) -> str:
        return self.message


class NotAuthenticated(UrboxError):
    """Raised when a call needs a session token and none is available."""

    def __init__(self, message: str = "User not authenticated") -> None:
        self.message = message
        super().__init__(message)

    def user_message(self) -> str:
        return self.message


def user_message(exc: BaseException) -> str:
    """Text to show the user for any exception raised by a service call."""
    if isinstance(exc, UrboxError):
        return exc.user_message()
    return GENERIC_ERROR_MESSAGE
