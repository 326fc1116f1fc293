"""Payment state machine."""

from fieldbook.domain.errors import InvalidTransition

PAYMENT_TRANSITIONS = {
    "pending": {"paid", "failed"},
    "paid": {"refunded"},
    "failed": set(),
    "refunded": set(),
}

PAYMENT_METHODS = ("cash", "transfer", "ewallet", "card")

# Booking-level payment status, derived from its payments
BOOKING_PAYMENT_STATUSES = ("unpaid", "pending", "paid", "refunded")


def assert_payment_transition(current: str, target: str) -> None:
    allowed = PAYMENT_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransition(
            f"Invalid payment transition: {current} -> {target}",
            current_status=current,
            requested_status=target,
        )


def initial_payment_status(method: str) -> str:
    """Cash is collected at the counter, so it starts out paid."""
    return "paid" if method == "cash" else "pending"


def booking_payment_status_after(
    current: str, payment_status: str, other_pending: bool = False
) -> str:
    """Booking payment status after one of its payments reaches ``payment_status``."""
    if payment_status == "paid":
        return "paid"
    if payment_status == "refunded":
        return "refunded"
    if payment_status == "pending":
        return "pending" if current == "unpaid" else current
    if payment_status == "failed":
        if current == "pending" and not other_pending:
            return "unpaid"
        return current
    return current
