"""Pydantic schemas for API validation."""

from fieldbook.schemas.auto_completion import (
    AutoCompletionConfig,
    AutoCompletionRunResponse,
    AutoCompletionStats,
    EligibleBookingsResponse,
)
from fieldbook.schemas.booking import (
    BookingCreate,
    BookingHistoryResponse,
    BookingListResponse,
    BookingResponse,
)
from fieldbook.schemas.field import FieldAvailabilityResponse, FieldResponse
from fieldbook.schemas.payment import PaymentCreate, PaymentResponse

__all__ = [
    "AutoCompletionConfig",
    "AutoCompletionRunResponse",
    "AutoCompletionStats",
    "EligibleBookingsResponse",
    "BookingCreate",
    "BookingHistoryResponse",
    "BookingListResponse",
    "BookingResponse",
    "FieldAvailabilityResponse",
    "FieldResponse",
    "PaymentCreate",
    "PaymentResponse",
]
