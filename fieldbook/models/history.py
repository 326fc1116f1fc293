"""Booking history (transition log) model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fieldbook.database import Base


class BookingHistory(Base):
    """One row per booking state transition. Append-only."""

    __tablename__ = "booking_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id"), nullable=False, index=True
    )

    action: Mapped[str] = mapped_column(String(60), nullable=False)  # STATUS_CHANGE_PENDING_TO_CONFIRMED
    old_status: Mapped[str | None] = mapped_column(String(20))  # NULL on creation
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)

    # Actor; changed_by is NULL when the system acted
    changed_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"))
    actor_type: Mapped[str] = mapped_column(String(10), nullable=False, default="user")
    actor_role: Mapped[str] = mapped_column(String(20), nullable=False)

    reason: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
