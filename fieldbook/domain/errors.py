"""Domain errors raised while evaluating booking transitions.

Each error carries a stable ``code`` that callers can branch on. These are
plain exceptions; the HTTP layer translates them in ``fieldbook.core.exceptions``.
"""

from typing import Any


class BookingError(Exception):
    """Base class for booking lifecycle errors."""

    code = "BOOKING_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "context": self.context}


class BookingValidationError(BookingError):
    """Malformed request: bad interval, missing reason, inactive field."""

    code = "VALIDATION_ERROR"


class ConflictDetected(BookingError):
    """Requested interval overlaps a live booking on the same field and date."""

    code = "CONFLICT_DETECTED"


class PaymentNotCompleted(BookingError):
    """Booking payment is not ``paid``; confirmation refused."""

    code = "PAYMENT_NOT_COMPLETED"


class InvalidTransition(BookingError):
    """Requested transition is not allowed from the booking's current state."""

    code = "INVALID_TRANSITION"


class Unauthorized(BookingError):
    """Actor may not perform the requested transition."""

    code = "UNAUTHORIZED"


class BookingNotFound(BookingError):
    code = "NOT_FOUND"


class PersistenceFailure(BookingError):
    """Store error; the unit of work was rolled back."""

    code = "PERSISTENCE_FAILURE"
