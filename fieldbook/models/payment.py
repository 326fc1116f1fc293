"""Payment database model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from fieldbook.database import Base


class Payment(Base):
    """Payment recorded against a booking."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[UUID] = mapped_column(Uuid, unique=True, nullable=False, default=uuid4)
    payment_number: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False, index=True
    )  # PAY-YYYYMMDD-XXXX
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id"), nullable=False, index=True
    )

    method: Mapped[str] = mapped_column(String(20), nullable=False)  # cash, transfer, ewallet, card
    provider: Mapped[str | None] = mapped_column(String(50))  # bank or wallet name

    # Amounts (IDR)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    admin_fee: Mapped[int] = mapped_column(Integer, default=0)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True
    )  # pending, paid, failed, refunded

    external_reference: Mapped[str | None] = mapped_column(String(255))
    gateway_response: Mapped[dict | None] = mapped_column(JSON)
    notes: Mapped[str | None] = mapped_column(Text)
    processed_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"))

    # Timestamps
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
