"""
Tests for FieldBook: payment recording and booking payment status
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from fieldbook.domain.errors import BookingNotFound, BookingValidationError, InvalidTransition
from fieldbook.models import AuditLog, Booking
from fieldbook.services.payment_service import PAYMENT_EXPIRY, payment_service
from conftest import NOW


@pytest.fixture
def run(session_factory):
    """Run a payment service call in its own transaction."""

    async def _run(method, *args, **kwargs):
        async with session_factory() as session:
            async with session.begin():
                return await getattr(payment_service, method)(session, *args, **kwargs)

    return _run


@pytest.fixture
def pending_booking(state_machine, seed, make_draft):
    async def _create(start="14:00", end="16:00"):
        result = await state_machine.create(make_draft(start, end), seed.actor("customer"))
        return result.booking

    return _create


async def _payment_status(session_factory, booking_id):
    async with session_factory() as session:
        return (await session.get(Booking, booking_id)).payment_status


class TestRecordPayment:
    async def test_cash_is_paid_immediately(self, run, seed, pending_booking, session_factory):
        booking = await pending_booking()

        payment = await run("record_payment", booking.id, "cash", seed.users["cashier"].id, NOW)

        assert payment.status == "paid"
        assert payment.paid_at is not None
        assert payment.expires_at is None
        assert payment.amount == booking.total_amount
        assert payment.payment_number.startswith("PAY-20250615-")
        assert await _payment_status(session_factory, booking.id) == "paid"

    async def test_transfer_starts_pending(self, run, seed, pending_booking, session_factory):
        booking = await pending_booking()

        payment = await run("record_payment", booking.id, "transfer", seed.users["cashier"].id, NOW)

        assert payment.status == "pending"
        assert payment.expires_at == NOW + PAYMENT_EXPIRY
        assert PAYMENT_EXPIRY == timedelta(hours=24)
        assert await _payment_status(session_factory, booking.id) == "pending"

    async def test_admin_fee_added_to_total(self, run, seed, pending_booking):
        booking = await pending_booking()
        payment = await run(
            "record_payment", booking.id, "ewallet", seed.users["cashier"].id, NOW, admin_fee=2500
        )
        assert payment.total_amount == booking.total_amount + 2500

    async def test_unknown_method_rejected(self, run, seed, pending_booking):
        booking = await pending_booking()
        with pytest.raises(BookingValidationError):
            await run("record_payment", booking.id, "cheque", seed.users["cashier"].id, NOW)

    async def test_unknown_booking(self, run, seed):
        with pytest.raises(BookingNotFound):
            await run("record_payment", 999, "cash", seed.users["cashier"].id, NOW)

    async def test_paid_booking_cannot_be_paid_again(self, run, seed, pending_booking):
        booking = await pending_booking()
        await run("record_payment", booking.id, "cash", seed.users["cashier"].id, NOW)

        with pytest.raises(BookingValidationError) as exc:
            await run("record_payment", booking.id, "cash", seed.users["cashier"].id, NOW)
        assert exc.value.message == "Booking already paid"

    async def test_rejected_booking_cannot_be_paid(self, run, seed, pending_booking, state_machine):
        booking = await pending_booking()
        await state_machine.reject(booking.id, seed.actor("operator"), reason="Tournament")

        with pytest.raises(BookingValidationError):
            await run("record_payment", booking.id, "cash", seed.users["cashier"].id, NOW)


class TestPaymentStatusChanges:
    async def test_mark_paid_unlocks_confirmation(self, run, seed, pending_booking, state_machine):
        booking = await pending_booking()
        payment = await run("record_payment", booking.id, "transfer", seed.users["cashier"].id, NOW)

        refused = await state_machine.confirm(booking.id, seed.actor("operator"))
        await run("mark_paid", payment.id, seed.users["cashier"].id, NOW, external_reference="TRX-1")
        confirmed = await state_machine.confirm(booking.id, seed.actor("operator"))

        assert refused.error_code == "PAYMENT_NOT_COMPLETED"
        assert refused.error.context["current_payment_status"] == "pending"
        assert confirmed.success

    async def test_mark_failed_reverts_to_unpaid(self, run, seed, pending_booking, session_factory):
        booking = await pending_booking()
        payment = await run("record_payment", booking.id, "card", seed.users["cashier"].id, NOW)

        failed = await run("mark_failed", payment.id, seed.users["cashier"].id, NOW, reason="Declined")

        assert failed.status == "failed"
        assert failed.notes == "Declined"
        assert await _payment_status(session_factory, booking.id) == "unpaid"

    async def test_failed_payment_cannot_be_paid(self, run, seed, pending_booking):
        booking = await pending_booking()
        payment = await run("record_payment", booking.id, "card", seed.users["cashier"].id, NOW)
        await run("mark_failed", payment.id, seed.users["cashier"].id, NOW)

        with pytest.raises(InvalidTransition):
            await run("mark_paid", payment.id, seed.users["cashier"].id, NOW)

    async def test_refund_requires_reason(self, run, seed, pending_booking):
        booking = await pending_booking()
        payment = await run("record_payment", booking.id, "cash", seed.users["cashier"].id, NOW)

        with pytest.raises(BookingValidationError):
            await run("refund", payment.id, seed.users["manager"].id, NOW, reason=" ")

    async def test_refund_marks_booking_refunded(self, run, seed, pending_booking, session_factory):
        booking = await pending_booking()
        payment = await run("record_payment", booking.id, "cash", seed.users["cashier"].id, NOW)

        refunded = await run("refund", payment.id, seed.users["manager"].id, NOW, reason="Rain")

        assert refunded.status == "refunded"
        assert refunded.refunded_at is not None
        assert await _payment_status(session_factory, booking.id) == "refunded"

    async def test_pending_payment_cannot_be_refunded(self, run, seed, pending_booking):
        booking = await pending_booking()
        payment = await run("record_payment", booking.id, "transfer", seed.users["cashier"].id, NOW)

        with pytest.raises(InvalidTransition):
            await run("refund", payment.id, seed.users["manager"].id, NOW, reason="Changed mind")

    async def test_list_for_booking(self, run, seed, pending_booking, session_factory):
        booking = await pending_booking()
        first = await run("record_payment", booking.id, "card", seed.users["cashier"].id, NOW)
        await run("mark_failed", first.id, seed.users["cashier"].id, NOW)
        await run("record_payment", booking.id, "cash", seed.users["cashier"].id, NOW)

        async with session_factory() as session:
            payments = await payment_service.list_for_booking(session, booking.id)
        assert [p.status for p in payments] == ["failed", "paid"]


class TestPaymentAudit:
    async def test_every_payment_change_is_audited(self, run, seed, pending_booking, session_factory):
        booking = await pending_booking()
        payment = await run("record_payment", booking.id, "transfer", seed.users["cashier"].id, NOW)
        await run("mark_paid", payment.id, seed.users["cashier"].id, NOW)
        await run("refund", payment.id, seed.users["manager"].id, NOW, reason="Rain")

        async with session_factory() as session:
            logs = (await session.execute(select(AuditLog).order_by(AuditLog.id))).scalars().all()

        assert [log.action for log in logs] == ["payment_recorded", "payment_mark_paid", "payment_refund"]
        assert all(log.resource_type == "payment" for log in logs)
        assert logs[-1].user_id == seed.users["manager"].id
        assert logs[-1].new_values["status"] == "refunded"
