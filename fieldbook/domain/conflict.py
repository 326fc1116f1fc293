"""Time-slot validation and overlap rules.

Slots are half-open ``[start, end)`` intervals on a single date, so a booking
ending at 16:00 and another starting at 16:00 do not conflict.
"""

from collections.abc import Iterable
from datetime import date, time
from decimal import Decimal
from typing import Protocol, TypeVar

from fieldbook.domain.booking_state import LIVE_STATUSES
from fieldbook.domain.errors import BookingValidationError


class Slot(Protocol):
    field_id: int
    date: date
    start_time: time
    end_time: time
    status: str


S = TypeVar("S", bound=Slot)


def intervals_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open overlap test: touching endpoints do not overlap."""
    return start_a < end_b and start_b < end_a


def validate_interval(
    start: time,
    end: time,
    opening_time: time | None = None,
    closing_time: time | None = None,
) -> None:
    """Reject empty, inverted or out-of-hours slots.

    Raises:
        BookingValidationError: if the slot cannot be booked as given
    """
    if start >= end:
        raise BookingValidationError(
            "End time must be after start time",
            start_time=start.isoformat(),
            end_time=end.isoformat(),
        )
    if opening_time is not None and start < opening_time:
        raise BookingValidationError(
            f"Start time must be at or after opening time {opening_time.strftime('%H:%M')}",
            start_time=start.isoformat(),
            opening_time=opening_time.isoformat(),
        )
    if closing_time is not None and end > closing_time:
        raise BookingValidationError(
            f"End time must be at or before closing time {closing_time.strftime('%H:%M')}",
            end_time=end.isoformat(),
            closing_time=closing_time.isoformat(),
        )


def duration_minutes(start: time, end: time) -> int:
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


def duration_hours(start: time, end: time) -> Decimal:
    return (Decimal(duration_minutes(start, end)) / Decimal(60)).quantize(Decimal("0.01"))


def find_conflicts(
    candidates: Iterable[S],
    field_id: int,
    booking_date: date,
    start: time,
    end: time,
) -> list[S]:
    """Filter ``candidates`` down to live bookings overlapping the slot."""
    return [
        b
        for b in candidates
        if b.field_id == field_id
        and b.date == booking_date
        and b.status in LIVE_STATUSES
        and intervals_overlap(start, end, b.start_time, b.end_time)
    ]
