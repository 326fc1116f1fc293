"""Booking and payment number generation utilities."""

import random
import string
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

_CHARS = string.ascii_uppercase + string.digits


async def generate_booking_number(db: AsyncSession, on_date: date) -> str:
    """Generate a unique booking number in format BK-YYYYMMDD-XXXXXX.

    Args:
        db: Database session for uniqueness check
        on_date: Date the booking is made (local)

    Returns:
        str: Unique booking number like 'BK-20250615-A3B7K9'
    """
    from fieldbook.models.booking import Booking

    while True:
        random_part = "".join(random.choices(_CHARS, k=6))
        booking_number = f"BK-{on_date.strftime('%Y%m%d')}-{random_part}"

        result = await db.execute(
            select(Booking.id).where(Booking.booking_number == booking_number)
        )
        if result.scalar_one_or_none() is None:
            return booking_number


async def generate_payment_number(db: AsyncSession, on_date: date) -> str:
    """Generate a unique payment number.

    Returns:
        str: Payment number like 'PAY-20250615-K9M2'
    """
    from fieldbook.models.payment import Payment

    while True:
        random_part = "".join(random.choices(_CHARS, k=4))
        payment_number = f"PAY-{on_date.strftime('%Y%m%d')}-{random_part}"

        result = await db.execute(
            select(Payment.id).where(Payment.payment_number == payment_number)
        )
        if result.scalar_one_or_none() is None:
            return payment_number
