"""
Booking error taxonomy.

Every error a request can end with maps to exactly one of these classes, and
each class carries the HTTP status it is surfaced as. Handlers registered in
``main.py`` turn them into JSON responses.
"""

from datetime import datetime
from typing import Optional


class BookingError(Exception):
    """Base class for errors reported to API callers."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_response(self) -> dict:
        return {"detail": self.detail}


class ValidationError(BookingError):
    """Malformed input, past-dated booking, outside business hours."""

    status_code = 400


class IllegalTransitionError(ValidationError):
    """Requested status change is not in the transition table."""


class ConflictError(BookingError):
    """Staff member is unavailable for the requested window."""

    status_code = 409

    def __init__(
        self,
        detail: str,
        suggested_start: Optional[datetime] = None,
        suggested_end: Optional[datetime] = None,
    ):
        super().__init__(detail)
        self.suggested_start = suggested_start
        self.suggested_end = suggested_end

    def to_response(self) -> dict:
        return {
            "detail": self.detail,
            "suggestedStart": self.suggested_start.isoformat() if self.suggested_start else None,
            "suggestedEnd": self.suggested_end.isoformat() if self.suggested_end else None,
        }


class NotFoundError(BookingError):
    status_code = 404


class AuthenticationError(BookingError):
    status_code = 401


class AuthorizationError(BookingError):
    status_code = 403


class PersistenceError(BookingError):
    """Store unavailable or transaction aborted.

    ``retryable`` is set for transient failures (serialization conflicts,
    lock timeouts) where re-running validate-and-commit from scratch is safe.
    """

    status_code = 503

    def __init__(self, detail: str, retryable: bool = False):
        super().__init__(detail)
        self.retryable = retryable


class NotificationDeliveryError(Exception):
    """A push to a live connection failed. Logged, never raised to callers."""

    def __init__(self, user_id: str, reason: str):
        super().__init__(f"Delivery to {user_id} failed: {reason}")
        self.user_id = user_id
        self.reason = reason
