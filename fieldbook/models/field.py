"""Field (bookable resource) database model."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from fieldbook.config import settings
from fieldbook.database import Base


class Field(Base):
    """A rentable sports field or court."""

    __tablename__ = "fields"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)  # futsal, mini_soccer, badminton
    description: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(String(255))

    # Pricing (IDR, smallest currency unit)
    price_per_hour: Mapped[int] = mapped_column(Integer, nullable=False)

    # Operating hours
    opening_time: Mapped[dt.time] = mapped_column(
        Time, nullable=False, default=settings.default_opening_time
    )
    closing_time: Mapped[dt.time] = mapped_column(
        Time, nullable=False, default=settings.default_closing_time
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active"
    )  # active, inactive, maintenance

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    @property
    def is_bookable(self) -> bool:
        return self.status == "active"
