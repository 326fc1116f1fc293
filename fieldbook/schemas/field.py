"""Field-related Pydantic schemas."""

from datetime import date, time

from pydantic import BaseModel, ConfigDict


class FieldResponse(BaseModel):
    """Schema for field response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    description: str | None
    location: str | None
    price_per_hour: int
    opening_time: time
    closing_time: time
    status: str


class BookedSlot(BaseModel):
    """A slot held by a pending or confirmed booking."""

    model_config = ConfigDict(from_attributes=True)

    booking_number: str
    start_time: time
    end_time: time
    status: str


class FieldAvailabilityResponse(BaseModel):
    """Schema for a field's booked slots on one date."""

    field_id: int
    date: date
    opening_time: time
    closing_time: time
    is_bookable: bool
    booked_slots: list[BookedSlot]
