"""
Shared fixtures: a file-backed SQLite database per test, seeded users of
every role, two fields and a clock the tests can move.
"""

import os

os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fieldbook.core.locking import SlotLockRegistry
from fieldbook.database import Base
from fieldbook.domain.transition import Actor, BookingDraft
from fieldbook.models import Field, User
from fieldbook.services.booking_service import BookingStateMachine
from fieldbook.services.payment_service import payment_service

JAKARTA = ZoneInfo("Asia/Jakarta")
DAY = date(2025, 6, 15)
NOW = datetime(2025, 6, 15, 10, 0, tzinfo=JAKARTA)
GRACE = timedelta(minutes=15)

ROLES = ("guest", "customer", "cashier", "operator", "manager", "supervisor")


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    """Local (Asia/Jakarta) moment on ``day``."""
    return datetime.combine(day, time(hour, minute), tzinfo=JAKARTA)


class MovableClock:
    """Clock pinned to a moment that tests can move."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


@dataclass
class Seed:
    users: dict[str, User]
    other_customer: User
    field: Field
    closed_field: Field

    def actor(self, role: str) -> Actor:
        user = self.users[role]
        return Actor(id=user.id, role=user.role)

    @property
    def other(self) -> Actor:
        return Actor(id=self.other_customer.id, role=self.other_customer.role)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fieldbook.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def seed(session_factory) -> Seed:
    async with session_factory() as session:
        users = {
            role: User(email=f"{role}@fieldbook.test", name=role.title(), role=role)
            for role in ROLES
        }
        other = User(email="other@fieldbook.test", name="Other", role="customer")
        field = Field(
            name="Futsal A",
            type="futsal",
            price_per_hour=50000,
            opening_time=time(8, 0),
            closing_time=time(23, 0),
            status="active",
        )
        closed = Field(
            name="Futsal B",
            type="futsal",
            price_per_hour=50000,
            opening_time=time(8, 0),
            closing_time=time(23, 0),
            status="maintenance",
        )
        session.add_all([*users.values(), other, field, closed])
        await session.commit()
    return Seed(users=users, other_customer=other, field=field, closed_field=closed)


@pytest.fixture
def clock() -> MovableClock:
    return MovableClock(NOW)


@pytest.fixture
def state_machine(session_factory, clock) -> BookingStateMachine:
    return BookingStateMachine(
        session_factory,
        clock=clock,
        grace_period=GRACE,
        locks=SlotLockRegistry(),
    )


@pytest.fixture
def make_draft(seed):
    def _make(start: str, end: str, **overrides) -> BookingDraft:
        values = {
            "field_id": seed.field.id,
            "date": DAY,
            "start_time": time.fromisoformat(start),
            "end_time": time.fromisoformat(end),
            "name": "Budi Santoso",
            "phone": "081234567890",
        }
        values.update(overrides)
        return BookingDraft(**values)

    return _make


@pytest.fixture
def pay_cash(session_factory, seed, clock):
    """Record a cash payment for a booking as the cashier."""

    async def _pay(booking_id: int):
        async with session_factory() as session:
            async with session.begin():
                return await payment_service.record_payment(
                    session, booking_id, "cash", seed.users["cashier"].id, clock()
                )

    return _pay


@pytest.fixture
def confirmed_booking(state_machine, seed, make_draft, pay_cash):
    """Create, pay and confirm a booking; returns the confirmed booking."""

    async def _book(start: str = "14:00", end: str = "16:00"):
        created = await state_machine.create(make_draft(start, end), seed.actor("customer"))
        assert created.success, created.error
        await pay_cash(created.booking.id)
        confirmed = await state_machine.confirm(created.booking.id, seed.actor("operator"))
        assert confirmed.success, confirmed.error
        return confirmed.booking

    return _book
