"""Booking lifecycle state machine.

Every lifecycle change of a booking goes through ``BookingStateMachine``.
Each call runs in its own transaction: the slot check, the state write, any
cash payment and the history row either all commit or none do. Callers get a
``TransitionResult`` back; domain and storage errors never escape.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fieldbook.config import settings
from fieldbook.core.locking import SlotLockRegistry, acquire_slot_xact_lock, slot_locks
from fieldbook.core.permissions import (
    Permission,
    UserRole,
    actor_is_permitted,
    has_min_role,
    has_permission,
)
from fieldbook.domain import booking_state
from fieldbook.domain.booking_state import assert_booking_transition
from fieldbook.domain.conflict import duration_hours, duration_minutes, validate_interval
from fieldbook.domain.errors import (
    BookingError,
    BookingNotFound,
    BookingValidationError,
    ConflictDetected,
    InvalidTransition,
    PersistenceFailure,
    Unauthorized,
)
from fieldbook.domain.payment_gate import assert_payment_completed
from fieldbook.domain.transition import (
    Actor,
    BookingDraft,
    Transition,
    TransitionResult,
)
from fieldbook.models.booking import Booking
from fieldbook.models.user import User
from fieldbook.services.booking_store import BookingStore
from fieldbook.services.history_service import HistoryEmitter, history_emitter
from fieldbook.services.payment_service import PaymentService, payment_service
from fieldbook.utils.booking_number import generate_booking_number
from fieldbook.utils.clock import Clock, local_now, to_local_naive

logger = logging.getLogger(__name__)

AUTO_COMPLETION_REASON = "Auto-completed by system after grace period"


class BookingStateMachine:
    """Single entry point for booking lifecycle transitions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = local_now,
        grace_period: timedelta | None = None,
        locks: SlotLockRegistry = slot_locks,
        history: HistoryEmitter = history_emitter,
        payments: PaymentService = payment_service,
    ) -> None:
        self.session_factory = session_factory
        self.clock = clock
        self.grace_period = (
            grace_period
            if grace_period is not None
            else timedelta(minutes=settings.auto_completion_grace_minutes)
        )
        self.locks = locks
        self.history = history
        self.payments = payments

    # ==================== ENTRY POINT ====================

    async def request_transition(
        self,
        target: int | BookingDraft,
        transition: Transition,
        actor: Actor,
        reason: str | None = None,
        notes: str | None = None,
    ) -> TransitionResult:
        """Evaluate and apply one transition.

        Args:
            target: Booking id, or a ``BookingDraft`` for ``Transition.CREATE``
            transition: Requested transition
            actor: Acting user, or ``SYSTEM_ACTOR``
            reason: Required for reject and cancel
            notes: Free text stored on the history row

        Returns:
            TransitionResult with the updated booking, or the error that refused it
        """
        try:
            if transition is Transition.CREATE:
                if not isinstance(target, BookingDraft):
                    raise BookingValidationError("Create requires booking details")
                return await self._create(target, actor, notes)
            if isinstance(target, BookingDraft):
                raise BookingValidationError(f"{transition.value} requires a booking id")
            return await self._apply(target, transition, actor, reason, notes)
        except BookingError as exc:
            logger.warning(
                "Booking %s refused (target=%s actor=%s/%s): %s %s",
                transition.value,
                _describe(target),
                actor.role,
                actor.id,
                exc.code,
                exc.message,
            )
            return TransitionResult.failed(exc)
        except SQLAlchemyError as exc:
            logger.exception(
                "Storage failure during booking %s (target=%s)", transition.value, _describe(target)
            )
            return TransitionResult.failed(
                PersistenceFailure(
                    "Storage error; no changes were saved",
                    transition=transition.value,
                    error=exc.__class__.__name__,
                )
            )

    async def create(self, draft: BookingDraft, actor: Actor, notes: str | None = None) -> TransitionResult:
        return await self.request_transition(draft, Transition.CREATE, actor, notes=notes)

    async def confirm(self, booking_id: int, actor: Actor, notes: str | None = None) -> TransitionResult:
        return await self.request_transition(booking_id, Transition.CONFIRM, actor, notes=notes)

    async def reject(self, booking_id: int, actor: Actor, reason: str | None, notes: str | None = None) -> TransitionResult:
        return await self.request_transition(booking_id, Transition.REJECT, actor, reason=reason, notes=notes)

    async def cancel(self, booking_id: int, actor: Actor, reason: str | None, notes: str | None = None) -> TransitionResult:
        return await self.request_transition(booking_id, Transition.CANCEL, actor, reason=reason, notes=notes)

    async def complete(
        self,
        booking_id: int,
        actor: Actor,
        reason: str | None = None,
        notes: str | None = None,
    ) -> TransitionResult:
        return await self.request_transition(booking_id, Transition.COMPLETE, actor, reason=reason, notes=notes)

    # ==================== CREATE ====================

    async def _create(self, draft: BookingDraft, actor: Actor, notes: str | None) -> TransitionResult:
        if not actor_is_permitted(actor, Transition.CREATE):
            raise Unauthorized(
                f"Role '{actor.role}' cannot create bookings", role=actor.role, transition="create"
            )
        owner_id = draft.user_id if draft.user_id is not None else actor.id
        if owner_id != actor.id and not has_min_role(actor.role, UserRole.CASHIER):
            raise Unauthorized("Only staff can create bookings for another user", role=actor.role)
        if draft.payment_method is not None:
            if draft.payment_method != "cash":
                raise BookingValidationError(
                    "Only cash can be settled at booking time; record other payments separately",
                    payment_method=draft.payment_method,
                )
            if not has_permission(actor.role, Permission.CREATE_CASH_BOOKING):
                raise Unauthorized("Cash bookings require cashier role or higher", role=actor.role)

        # Shape checks never touch the store
        validate_interval(draft.start_time, draft.end_time)
        if min(draft.discount_amount, draft.admin_fee) < 0 or (draft.base_amount or 0) < 0:
            raise BookingValidationError("Amounts must not be negative")
        if not draft.name.strip() or not draft.phone.strip():
            raise BookingValidationError("Name and phone are required")

        now = self.clock()
        now_local = to_local_naive(now)
        if datetime.combine(draft.date, draft.start_time) < now_local:
            raise BookingValidationError(
                "Cannot book a slot that has already started",
                date=draft.date.isoformat(),
                start_time=draft.start_time.isoformat(),
            )

        async with self.locks.hold(draft.field_id, draft.date):
            async with self.session_factory() as session:
                async with session.begin():
                    store = BookingStore(session)
                    await acquire_slot_xact_lock(session, draft.field_id, draft.date)

                    field = await store.get_field(draft.field_id)
                    if field is None:
                        raise BookingNotFound(f"Field {draft.field_id} not found", field_id=draft.field_id)
                    if not field.is_bookable:
                        raise BookingValidationError(
                            f"Field is not available for booking ({field.status})",
                            field_id=field.id,
                            field_status=field.status,
                        )
                    if owner_id != actor.id:
                        owner = await session.get(User, owner_id)
                        if owner is None:
                            raise BookingNotFound(f"User {owner_id} not found", user_id=owner_id)
                        if not owner.is_active:
                            raise BookingValidationError(
                                "Cannot book for an inactive user", user_id=owner_id
                            )

                    validate_interval(
                        draft.start_time, draft.end_time, field.opening_time, field.closing_time
                    )

                    conflicts = await store.find_overlapping(
                        draft.field_id, draft.date, draft.start_time, draft.end_time
                    )
                    if conflicts:
                        raise ConflictDetected(
                            "Time slot conflicts with an existing booking",
                            conflicting_bookings=[_slot_summary(b) for b in conflicts],
                        )

                    base_amount = draft.base_amount
                    if base_amount is None:
                        base_amount = field.price_per_hour * duration_minutes(draft.start_time, draft.end_time) // 60
                    total_amount = base_amount - draft.discount_amount + draft.admin_fee
                    if total_amount < 0:
                        raise BookingValidationError("Total amount must not be negative", total_amount=total_amount)

                    booking = await store.insert_booking(
                        booking_number=await generate_booking_number(session, now_local.date()),
                        user_id=owner_id,
                        field_id=draft.field_id,
                        date=draft.date,
                        start_time=draft.start_time,
                        end_time=draft.end_time,
                        duration_hours=duration_hours(draft.start_time, draft.end_time),
                        name=draft.name.strip(),
                        phone=draft.phone.strip(),
                        email=draft.email,
                        notes=draft.notes,
                        base_amount=base_amount,
                        discount_amount=draft.discount_amount,
                        admin_fee=draft.admin_fee,
                        total_amount=total_amount,
                        status=booking_state.PENDING,
                        payment_status="unpaid",
                        created_by=actor.id,
                    )
                    record = await self.history.emit(
                        store, booking.id, None, booking_state.PENDING, actor, now, notes=notes
                    )

                    payment = None
                    if draft.payment_method == "cash":
                        payment = await self.payments.record_for_booking(
                            session, booking, "cash", actor.id, now, notes="Paid at counter"
                        )

        logger.info(
            "Booking %s created on field %s %s %s-%s by %s/%s",
            booking.booking_number,
            booking.field_id,
            booking.date,
            booking.start_time,
            booking.end_time,
            actor.role,
            actor.id,
        )
        extras: dict[str, Any] = {}
        if payment is not None:
            extras["payment"] = payment
        return TransitionResult.ok(booking, record, **extras)

    # ==================== EXISTING BOOKINGS ====================

    async def _slot_of(self, booking_id: int) -> tuple[int, Any]:
        """Field and date of a booking; both are immutable after creation."""
        async with self.session_factory() as session:
            booking = await BookingStore(session).get_booking(booking_id)
            if booking is None:
                raise BookingNotFound(f"Booking {booking_id} not found", booking_id=booking_id)
            return booking.field_id, booking.date

    async def _apply(
        self,
        booking_id: int,
        transition: Transition,
        actor: Actor,
        reason: str | None,
        notes: str | None,
    ) -> TransitionResult:
        reason = reason.strip() if reason else None
        if transition.requires_reason and not reason:
            raise BookingValidationError(f"A reason is required to {transition.value} a booking")

        target_status = transition.target_status
        field_id, booking_date = await self._slot_of(booking_id)

        async with self.locks.hold(field_id, booking_date):
            async with self.session_factory() as session:
                async with session.begin():
                    store = BookingStore(session)
                    await acquire_slot_xact_lock(session, field_id, booking_date)

                    booking = await store.get_booking(booking_id, for_update=True)
                    if booking is None:
                        raise BookingNotFound(f"Booking {booking_id} not found", booking_id=booking_id)

                    is_owner = actor.id is not None and actor.id == booking.user_id
                    if not actor_is_permitted(actor, transition, is_owner=is_owner):
                        raise Unauthorized(
                            f"Role '{actor.role}' cannot {transition.value} this booking",
                            role=actor.role,
                            transition=transition.value,
                        )

                    old_status = booking.status
                    assert_booking_transition(old_status, target_status)

                    now = self.clock()
                    if transition is Transition.CONFIRM:
                        assert_payment_completed(booking)
                    elif transition is Transition.COMPLETE:
                        self._assert_completable(booking, actor, to_local_naive(now))

                    booking = await store.update_booking_state(
                        booking_id,
                        old_status,
                        target_status,
                        _stamps(transition, actor, now, reason),
                    )
                    record = await self.history.emit(
                        store, booking.id, old_status, target_status, actor, now, reason=reason, notes=notes
                    )

        logger.info(
            "Booking %s %s -> %s by %s/%s",
            booking.booking_number,
            old_status,
            target_status,
            actor.role,
            actor.id,
        )
        return TransitionResult.ok(booking, record)

    def _assert_completable(self, booking: Booking, actor: Actor, now_local: datetime) -> None:
        if actor.is_system:
            due_at = booking.ends_at + self.grace_period
            if now_local < due_at:
                raise InvalidTransition(
                    "Booking is not yet due for auto-completion",
                    due_at=due_at.isoformat(),
                )
        elif now_local < booking.starts_at:
            raise InvalidTransition(
                "Booking cannot be completed before it starts",
                starts_at=booking.starts_at.isoformat(),
            )


def _stamps(transition: Transition, actor: Actor, now: datetime, reason: str | None) -> dict[str, Any]:
    """Provenance columns written alongside the new status."""
    if transition is Transition.CONFIRM:
        return {"confirmed_by": actor.id, "confirmed_at": now}
    if transition is Transition.REJECT:
        return {"rejected_by": actor.id, "rejected_at": now, "rejection_reason": reason}
    if transition is Transition.CANCEL:
        return {"cancelled_by": actor.id, "cancelled_at": now, "cancellation_reason": reason}
    if transition is Transition.COMPLETE:
        return {"completed_by": actor.id, "completed_at": now}
    return {}


def _slot_summary(booking: Booking) -> dict[str, Any]:
    return {
        "booking_number": booking.booking_number,
        "start_time": booking.start_time.strftime("%H:%M"),
        "end_time": booking.end_time.strftime("%H:%M"),
        "status": booking.status,
    }


def _describe(target: int | BookingDraft) -> str:
    if isinstance(target, BookingDraft):
        return f"field {target.field_id} {target.date} {target.start_time}-{target.end_time}"
    return f"booking {target}"
