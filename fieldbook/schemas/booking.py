"""Booking-related Pydantic schemas."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fieldbook.domain.transition import BookingDraft


class BookingCreate(BaseModel):
    """Schema for creating a booking.

    Slot shape (end after start, within opening hours) is checked by the
    state machine so every client gets the same VALIDATION_ERROR response.
    """

    field_id: int = Field(..., ge=1)
    date: date
    start_time: time
    end_time: time
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=6, max_length=20)
    email: str | None = Field(None, max_length=255)
    notes: str | None = Field(None, max_length=1000)

    # Staff only: book on behalf of a customer
    user_id: int | None = Field(None, ge=1)

    base_amount: int | None = Field(None, ge=0)
    discount_amount: int = Field(default=0, ge=0)
    admin_fee: int = Field(default=0, ge=0)

    # Cashier or higher: settle in cash at the counter
    payment_method: Literal["cash"] | None = None

    @field_validator("name", "phone")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    def to_draft(self) -> BookingDraft:
        return BookingDraft(**self.model_dump())


class BookingReasonRequest(BaseModel):
    """Schema for reject/cancel requests."""

    reason: str = Field(..., min_length=1, max_length=500)
    notes: str | None = Field(None, max_length=1000)


class BookingNotesRequest(BaseModel):
    """Schema for confirm/complete requests."""

    notes: str | None = Field(None, max_length=1000)


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    uuid: UUID
    booking_number: str
    user_id: int
    field_id: int

    # Slot
    date: date
    start_time: time
    end_time: time
    duration_hours: Decimal

    # Contact
    name: str
    phone: str
    email: str | None
    notes: str | None

    # Pricing
    base_amount: int
    discount_amount: int
    admin_fee: int
    total_amount: int

    # Status
    status: str
    payment_status: str

    # Provenance
    created_by: int | None
    confirmed_by: int | None
    confirmed_at: datetime | None
    cancelled_by: int | None
    cancelled_at: datetime | None
    cancellation_reason: str | None
    rejected_by: int | None
    rejected_at: datetime | None
    rejection_reason: str | None
    completed_by: int | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class BookingListResponse(BaseModel):
    """Schema for paginated booking list."""

    bookings: list[BookingResponse]
    total: int
    page: int
    page_size: int


class BookingHistoryResponse(BaseModel):
    """One booking history entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    booking_id: int
    action: str
    old_status: str | None
    new_status: str
    changed_by: int | None
    actor_type: str
    actor_role: str
    reason: str | None
    notes: str | None
    created_at: datetime
