"""Payment gate for booking confirmation."""

from typing import Protocol

from fieldbook.domain.errors import PaymentNotCompleted

REQUIRED_PAYMENT_STATUS = "paid"


class HasPaymentStatus(Protocol):
    payment_status: str


def can_confirm(booking: HasPaymentStatus) -> bool:
    return booking.payment_status == REQUIRED_PAYMENT_STATUS


def assert_payment_completed(booking: HasPaymentStatus) -> None:
    if not can_confirm(booking):
        raise PaymentNotCompleted(
            "Payment must be completed before confirming booking",
            current_payment_status=booking.payment_status,
            required_payment_status=REQUIRED_PAYMENT_STATUS,
        )
