"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status

from fieldbook.domain.errors import BookingError


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.context = context or {}
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(
        self,
        detail: str = "Validation failed",
        errors: list[dict[str, Any]] | None = None,
        code: str = "VALIDATION_ERROR",
        context: dict[str, Any] | None = None,
    ) -> None:
        self.errors = errors
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            code=code,
            context=context,
        )


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail, code="NOT_FOUND")


class AuthenticationError(AppException):
    """Authentication failed exception."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
            code="AUTHENTICATION_FAILED",
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    def __init__(
        self,
        detail: str = "You don't have permission to access this resource",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            code="UNAUTHORIZED",
            context=context,
        )


class SlotNotAvailable(AppException):
    """Requested time slot overlaps a live booking."""

    def __init__(
        self,
        detail: str = "The selected time slot is not available",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            code="CONFLICT_DETECTED",
            context=context,
        )


class InvalidBookingStatus(AppException):
    """Invalid booking status for operation."""

    def __init__(
        self,
        detail: str = "This operation is not allowed for the current booking status",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            code="INVALID_TRANSITION",
            context=context,
        )


class PaymentRequired(AppException):
    """Booking payment has not been completed."""

    def __init__(
        self,
        detail: str = "Payment must be completed first",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail=detail,
            code="PAYMENT_NOT_COMPLETED",
            context=context,
        )


class ServiceUnavailable(AppException):
    """Storage or downstream service failure."""

    def __init__(self, detail: str = "Service temporarily unavailable") -> None:
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            code="PERSISTENCE_FAILURE",
        )


_BOOKING_ERRORS: dict[str, type[AppException]] = {
    "VALIDATION_ERROR": ValidationError,
    "CONFLICT_DETECTED": SlotNotAvailable,
    "PAYMENT_NOT_COMPLETED": PaymentRequired,
    "INVALID_TRANSITION": InvalidBookingStatus,
    "UNAUTHORIZED": AuthorizationError,
}


def http_error_for(error: BookingError) -> AppException:
    """Translate a booking domain error into its HTTP exception."""
    exc_class = _BOOKING_ERRORS.get(error.code)
    if exc_class is not None:
        return exc_class(error.message, context=error.context)
    if error.code == "NOT_FOUND":
        return AppException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error.message,
            code=error.code,
            context=error.context,
        )
    if error.code == "PERSISTENCE_FAILURE":
        return ServiceUnavailable(error.message)
    return AppException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=error.message,
        code=error.code,
        context=error.context,
    )
