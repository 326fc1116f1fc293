"""Value types exchanged with the booking state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import TYPE_CHECKING, Any

from fieldbook.domain import booking_state
from fieldbook.domain.errors import BookingError

if TYPE_CHECKING:
    from fieldbook.models.booking import Booking


class Transition(str, Enum):
    """Lifecycle operations a caller can request."""

    CREATE = "create"
    CONFIRM = "confirm"
    REJECT = "reject"
    CANCEL = "cancel"
    COMPLETE = "complete"

    @property
    def target_status(self) -> str:
        return TRANSITION_TARGETS[self]

    @property
    def requires_reason(self) -> bool:
        return self in (Transition.REJECT, Transition.CANCEL)


TRANSITION_TARGETS: dict[Transition, str] = {
    Transition.CREATE: booking_state.PENDING,
    Transition.CONFIRM: booking_state.CONFIRMED,
    Transition.REJECT: booking_state.REJECTED,
    Transition.CANCEL: booking_state.CANCELLED,
    Transition.COMPLETE: booking_state.COMPLETED,
}


@dataclass(frozen=True)
class Actor:
    """Who is asking for a transition."""

    id: int | None
    role: str
    is_system: bool = False

    @property
    def actor_type(self) -> str:
        return "system" if self.is_system else "user"


SYSTEM_ACTOR = Actor(id=None, role="system", is_system=True)


@dataclass
class BookingDraft:
    """Input for the ``create`` transition."""

    field_id: int
    date: date
    start_time: time
    end_time: time
    name: str
    phone: str
    email: str | None = None
    notes: str | None = None
    user_id: int | None = None  # owner; defaults to the acting user
    base_amount: int | None = None  # derived from the field's hourly price when omitted
    discount_amount: int = 0
    admin_fee: int = 0
    payment_method: str | None = None  # "cash" records a paid payment at creation


@dataclass(frozen=True)
class TransitionRecord:
    """One row of booking history."""

    booking_id: int
    action: str
    old_status: str | None
    new_status: str
    actor: Actor
    created_at: datetime
    reason: str | None = None
    notes: str | None = None


@dataclass
class TransitionResult:
    """Outcome of a requested transition."""

    success: bool
    booking: Booking | None = None
    error: BookingError | None = None
    record: TransitionRecord | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(
        cls, booking: Booking, record: TransitionRecord | None = None, **extras: Any
    ) -> TransitionResult:
        return cls(success=True, booking=booking, record=record, extras=extras)

    @classmethod
    def failed(cls, error: BookingError, booking: Booking | None = None) -> TransitionResult:
        return cls(success=False, booking=booking, error=error)

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error else None
