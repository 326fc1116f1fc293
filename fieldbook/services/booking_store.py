"""Persistence operations used by the booking state machine.

All methods run on the caller's session; the caller owns the transaction.
"""

from datetime import date, datetime, time
from typing import Any

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.domain.booking_state import CONFIRMED, LIVE_STATUSES
from fieldbook.domain.conflict import find_conflicts
from fieldbook.domain.errors import InvalidTransition
from fieldbook.domain.transition import TransitionRecord
from fieldbook.models.booking import Booking
from fieldbook.models.field import Field
from fieldbook.models.history import BookingHistory


class BookingStore:
    """Booking reads and writes on one session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_field(self, field_id: int) -> Field | None:
        return await self.session.get(Field, field_id)

    async def get_booking(self, booking_id: int, for_update: bool = False) -> Booking | None:
        query = select(Booking).where(Booking.id == booking_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def live_bookings_on(self, field_id: int, booking_date: date, lock: bool = False) -> list[Booking]:
        """Pending and confirmed bookings on a field and date, by start time."""
        query = (
            select(Booking)
            .where(
                Booking.field_id == field_id,
                Booking.date == booking_date,
                Booking.status.in_(LIVE_STATUSES),
            )
            .order_by(Booking.start_time)
        )
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_overlapping(
        self,
        field_id: int,
        booking_date: date,
        start: time,
        end: time,
        exclude_id: int | None = None,
    ) -> list[Booking]:
        """Live bookings whose slot overlaps ``[start, end)``."""
        live = await self.live_bookings_on(field_id, booking_date, lock=True)
        if exclude_id is not None:
            live = [b for b in live if b.id != exclude_id]
        return find_conflicts(live, field_id, booking_date, start, end)

    async def insert_booking(self, **values: Any) -> Booking:
        booking = Booking(**values)
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def update_booking_state(
        self,
        booking_id: int,
        expected_status: str,
        new_status: str,
        values: dict[str, Any] | None = None,
    ) -> Booking:
        """Compare-and-set the booking status.

        Raises:
            InvalidTransition: if the booking is no longer in ``expected_status``
        """
        result = await self.session.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == expected_status)
            .values(status=new_status, **(values or {}))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidTransition(
                f"Booking {booking_id} is no longer {expected_status}",
                expected_status=expected_status,
                requested_status=new_status,
            )
        booking = await self.session.get(Booking, booking_id, populate_existing=True)
        return booking

    async def append_transition_record(self, record: TransitionRecord) -> BookingHistory:
        row = BookingHistory(
            booking_id=record.booking_id,
            action=record.action,
            old_status=record.old_status,
            new_status=record.new_status,
            changed_by=record.actor.id,
            actor_type=record.actor.actor_type,
            actor_role=record.actor.role,
            reason=record.reason,
            notes=record.notes,
            created_at=record.created_at,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def select_auto_completion_candidates(self, now_local: datetime) -> list[Booking]:
        """Confirmed, not yet completed bookings whose slot has ended.

        ``now_local`` is a naive wall-clock datetime in the venue timezone.
        """
        today = now_local.date()
        result = await self.session.execute(
            select(Booking)
            .where(
                Booking.status == CONFIRMED,
                Booking.completed_at.is_(None),
                or_(
                    Booking.date < today,
                    and_(Booking.date == today, Booking.end_time <= now_local.time()),
                ),
            )
            .order_by(Booking.date, Booking.end_time, Booking.id)
        )
        return list(result.scalars().all())
