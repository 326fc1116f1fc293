"""Payment recording and status changes.

Payments drive the booking's ``payment_status``, which is what the
confirmation payment gate reads. Cash is collected in person and is recorded
as paid immediately.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.domain.booking_state import CANCELLED, REJECTED
from fieldbook.domain.errors import BookingNotFound, BookingValidationError
from fieldbook.domain.payment_state import (
    PAYMENT_METHODS,
    assert_payment_transition,
    booking_payment_status_after,
    initial_payment_status,
)
from fieldbook.models.booking import Booking
from fieldbook.models.payment import Payment
from fieldbook.services.audit_service import audit_service
from fieldbook.utils.booking_number import generate_payment_number
from fieldbook.utils.clock import to_local_naive

logger = logging.getLogger(__name__)

# Non-cash payments left pending expire after this long
PAYMENT_EXPIRY = timedelta(hours=24)


class PaymentService:
    """Records payments against bookings and keeps booking payment status in sync."""

    async def _get_booking(self, db: AsyncSession, booking_id: int) -> Booking:
        result = await db.execute(
            select(Booking).where(Booking.id == booking_id).with_for_update()
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise BookingNotFound(f"Booking {booking_id} not found", booking_id=booking_id)
        return booking

    async def _get_payment(self, db: AsyncSession, payment_id: int) -> Payment:
        result = await db.execute(
            select(Payment).where(Payment.id == payment_id).with_for_update()
        )
        payment = result.scalar_one_or_none()
        if payment is None:
            raise BookingNotFound(f"Payment {payment_id} not found", payment_id=payment_id)
        return payment

    async def _has_other(self, db: AsyncSession, payment: Payment, status: str) -> bool:
        result = await db.execute(
            select(Payment.id).where(
                Payment.booking_id == payment.booking_id,
                Payment.id != payment.id,
                Payment.status == status,
            )
        )
        return result.first() is not None

    async def record_for_booking(
        self,
        db: AsyncSession,
        booking: Booking,
        method: str,
        actor_id: int | None,
        now: datetime,
        amount: int | None = None,
        admin_fee: int = 0,
        provider: str | None = None,
        external_reference: str | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Record a payment for an already loaded booking.

        Raises:
            BookingValidationError: unknown method, bad amount, booking closed or already paid
        """
        if method not in PAYMENT_METHODS:
            raise BookingValidationError(
                f"Unsupported payment method '{method}'", allowed_methods=list(PAYMENT_METHODS)
            )
        if booking.status in (CANCELLED, REJECTED):
            raise BookingValidationError(
                f"Cannot record payment for a {booking.status} booking", booking_status=booking.status
            )
        if booking.payment_status == "paid":
            raise BookingValidationError("Booking already paid", booking_id=booking.id)

        amount = booking.total_amount if amount is None else amount
        if amount <= 0 or admin_fee < 0:
            raise BookingValidationError("Payment amount must be positive", amount=amount)

        status = initial_payment_status(method)
        payment = Payment(
            payment_number=await generate_payment_number(db, to_local_naive(now).date()),
            booking_id=booking.id,
            method=method,
            provider=provider,
            amount=amount,
            admin_fee=admin_fee,
            total_amount=amount + admin_fee,
            status=status,
            external_reference=external_reference,
            notes=notes,
            processed_by=actor_id,
            paid_at=now if status == "paid" else None,
            expires_at=None if status == "paid" else now + PAYMENT_EXPIRY,
        )
        db.add(payment)
        await db.flush()

        booking.payment_status = booking_payment_status_after(booking.payment_status, status)

        await audit_service.log_payment_action(
            db,
            user_id=actor_id,
            action="payment_recorded",
            payment_id=payment.id,
            old_status=None,
            new_status=status,
            amount=payment.total_amount,
            booking_id=booking.id,
            created_at=now,
        )
        await db.flush()
        logger.info(
            "Recorded %s payment %s for booking %s (status=%s)",
            method,
            payment.payment_number,
            booking.booking_number,
            status,
        )
        return payment

    async def record_payment(
        self,
        db: AsyncSession,
        booking_id: int,
        method: str,
        actor_id: int | None,
        now: datetime,
        **kwargs,
    ) -> Payment:
        """Record a payment for ``booking_id``; cash payments are paid at once."""
        booking = await self._get_booking(db, booking_id)
        return await self.record_for_booking(db, booking, method, actor_id, now, **kwargs)

    async def mark_paid(
        self,
        db: AsyncSession,
        payment_id: int,
        actor_id: int | None,
        now: datetime,
        external_reference: str | None = None,
        gateway_response: dict | None = None,
    ) -> Payment:
        payment = await self._get_payment(db, payment_id)
        booking = await self._get_booking(db, payment.booking_id)
        assert_payment_transition(payment.status, "paid")
        if booking.payment_status == "paid" or await self._has_other(db, payment, "paid"):
            raise BookingValidationError("Booking already paid", booking_id=booking.id)

        old_status = payment.status
        payment.status = "paid"
        payment.paid_at = now
        if external_reference:
            payment.external_reference = external_reference
        if gateway_response is not None:
            payment.gateway_response = gateway_response
        payment.processed_by = actor_id
        booking.payment_status = booking_payment_status_after(booking.payment_status, "paid")

        await audit_service.log_payment_action(
            db,
            user_id=actor_id,
            action="payment_mark_paid",
            payment_id=payment.id,
            old_status=old_status,
            new_status="paid",
            amount=payment.total_amount,
            booking_id=booking.id,
            created_at=now,
        )
        await db.flush()
        return payment

    async def mark_failed(
        self,
        db: AsyncSession,
        payment_id: int,
        actor_id: int | None,
        now: datetime,
        reason: str | None = None,
    ) -> Payment:
        payment = await self._get_payment(db, payment_id)
        booking = await self._get_booking(db, payment.booking_id)
        assert_payment_transition(payment.status, "failed")

        payment.status = "failed"
        payment.failed_at = now
        payment.processed_by = actor_id
        if reason:
            payment.notes = reason
        other_pending = await self._has_other(db, payment, "pending")
        booking.payment_status = booking_payment_status_after(
            booking.payment_status, "failed", other_pending=other_pending
        )

        await audit_service.log_payment_action(
            db,
            user_id=actor_id,
            action="payment_mark_failed",
            payment_id=payment.id,
            old_status="pending",
            new_status="failed",
            booking_id=booking.id,
            created_at=now,
        )
        await db.flush()
        return payment

    async def refund(
        self,
        db: AsyncSession,
        payment_id: int,
        actor_id: int | None,
        now: datetime,
        reason: str,
    ) -> Payment:
        if not reason or not reason.strip():
            raise BookingValidationError("Refund reason is required")
        payment = await self._get_payment(db, payment_id)
        booking = await self._get_booking(db, payment.booking_id)
        assert_payment_transition(payment.status, "refunded")

        payment.status = "refunded"
        payment.refunded_at = now
        payment.processed_by = actor_id
        payment.notes = reason
        booking.payment_status = booking_payment_status_after(booking.payment_status, "refunded")

        await audit_service.log_payment_action(
            db,
            user_id=actor_id,
            action="payment_refund",
            payment_id=payment.id,
            old_status="paid",
            new_status="refunded",
            amount=payment.total_amount,
            booking_id=booking.id,
            created_at=now,
        )
        await db.flush()
        logger.info("Refunded payment %s for booking %s", payment.payment_number, booking.booking_number)
        return payment

    async def list_for_booking(self, db: AsyncSession, booking_id: int) -> list[Payment]:
        result = await db.execute(
            select(Payment).where(Payment.booking_id == booking_id).order_by(Payment.id)
        )
        return list(result.scalars().all())


payment_service = PaymentService()
