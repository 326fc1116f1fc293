"""Per-(field, date) locks serializing slot checks with booking writes.

Two layers are used:

- an in-process ``asyncio.Lock`` per key, so concurrent requests handled by
  the same worker queue up instead of racing the overlap check;
- on PostgreSQL, a transaction-scoped advisory lock on the same key, so
  requests handled by different processes are serialized too. The advisory
  lock is released automatically on commit or rollback.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_INT32_MAX = 2147483647


class SlotLockRegistry:
    """Registry of asyncio locks keyed by ``(field_id, date)``.

    A key lives only while some task holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[int, date], asyncio.Lock] = {}
        self._users: dict[tuple[int, date], int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, key: tuple[int, date]) -> bool:
        return key in self._locks

    @asynccontextmanager
    async def hold(self, field_id: int, booking_date: date) -> AsyncIterator[None]:
        key = (field_id, booking_date)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


def advisory_lock_keys(field_id: int, booking_date: date) -> tuple[int, int]:
    """Two 32-bit keys for ``pg_advisory_xact_lock(k1, k2)``."""
    return field_id % _INT32_MAX, booking_date.toordinal() % _INT32_MAX


async def acquire_slot_xact_lock(session: AsyncSession, field_id: int, booking_date: date) -> bool:
    """Take the cross-process slot lock inside the current transaction.

    Returns False on backends without advisory locks (SQLite in tests).
    """
    bind = session.get_bind()
    if bind.dialect.name != "postgresql":
        return False
    k1, k2 = advisory_lock_keys(field_id, booking_date)
    await session.execute(text("SELECT pg_advisory_xact_lock(:k1, :k2)"), {"k1": k1, "k2": k2})
    logger.debug("Acquired advisory lock field=%s date=%s", field_id, booking_date)
    return True


slot_locks = SlotLockRegistry()
