"""Booking state machine."""

from fieldbook.domain.errors import InvalidTransition

PENDING = "pending"
CONFIRMED = "confirmed"
COMPLETED = "completed"
CANCELLED = "cancelled"
REJECTED = "rejected"

BOOKING_STATUSES = (PENDING, CONFIRMED, COMPLETED, CANCELLED, REJECTED)

BOOKING_TRANSITIONS = {
    PENDING: {CONFIRMED, REJECTED, CANCELLED},
    CONFIRMED: {COMPLETED, CANCELLED},
    COMPLETED: set(),
    CANCELLED: set(),
    REJECTED: set(),
}

# Bookings in these states hold their time slot
LIVE_STATUSES = frozenset({PENDING, CONFIRMED})
TERMINAL_STATUSES = frozenset(s for s, targets in BOOKING_TRANSITIONS.items() if not targets)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, set())


def assert_booking_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Invalid booking transition: {current} -> {target}",
            current_status=current,
            requested_status=target,
        )


def history_action(old_status: str | None, new_status: str) -> str:
    """Action label stored on the booking history row."""
    if old_status is None:
        return "BOOKING_CREATED"
    return f"STATUS_CHANGE_{old_status.upper()}_TO_{new_status.upper()}"
