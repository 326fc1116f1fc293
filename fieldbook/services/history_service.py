"""Booking history emission.

Every accepted booking transition produces exactly one history row, written
through the same session (and so the same transaction) as the state change.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.domain.booking_state import history_action
from fieldbook.domain.transition import Actor, TransitionRecord
from fieldbook.models.history import BookingHistory
from fieldbook.services.booking_store import BookingStore


class HistoryEmitter:
    """Builds transition records and appends them via the store."""

    def build_record(
        self,
        booking_id: int,
        old_status: str | None,
        new_status: str,
        actor: Actor,
        at: datetime,
        reason: str | None = None,
        notes: str | None = None,
    ) -> TransitionRecord:
        return TransitionRecord(
            booking_id=booking_id,
            action=history_action(old_status, new_status),
            old_status=old_status,
            new_status=new_status,
            actor=actor,
            created_at=at,
            reason=reason,
            notes=notes,
        )

    async def emit(
        self,
        store: BookingStore,
        booking_id: int,
        old_status: str | None,
        new_status: str,
        actor: Actor,
        at: datetime,
        reason: str | None = None,
        notes: str | None = None,
    ) -> TransitionRecord:
        """Append the record for a transition that has just been applied.

        Raises whatever the store raises; the caller's transaction then rolls
        back the state change together with the history row.
        """
        record = self.build_record(booking_id, old_status, new_status, actor, at, reason, notes)
        await store.append_transition_record(record)
        return record

    async def list_for_booking(self, db: AsyncSession, booking_id: int) -> list[BookingHistory]:
        """History rows for a booking, oldest first."""
        result = await db.execute(
            select(BookingHistory)
            .where(BookingHistory.booking_id == booking_id)
            .order_by(BookingHistory.created_at, BookingHistory.id)
        )
        return list(result.scalars().all())


history_emitter = HistoryEmitter()
