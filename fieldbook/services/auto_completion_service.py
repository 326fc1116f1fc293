"""Automatic completion of bookings whose time slot has ended.

A confirmed booking becomes due once ``end + grace period`` has passed in the
venue's local time. Each due booking is completed through the state machine
with the system actor, one transaction per booking, so a failure on one
booking never affects the others. Running twice is harmless: completed
bookings are no longer candidates.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select

from fieldbook.config import settings
from fieldbook.domain.booking_state import COMPLETED
from fieldbook.domain.transition import SYSTEM_ACTOR
from fieldbook.models.booking import Booking
from fieldbook.services.booking_service import AUTO_COMPLETION_REASON, BookingStateMachine
from fieldbook.services.booking_store import BookingStore
from fieldbook.utils.clock import to_local_naive

logger = logging.getLogger(__name__)


@dataclass
class AutoCompletionReport:
    """Outcome of one auto-completion run."""

    started_at: datetime
    candidates: int = 0
    completed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)

    @property
    def completed_count(self) -> int:
        return len(self.completed)

    def as_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "candidates": self.candidates,
            "completed_count": self.completed_count,
            "completed": self.completed,
            "skipped": self.skipped,
            "failed": {str(k): v for k, v in self.failed.items()},
        }


class AutoCompletionEngine:
    """Finds due bookings and completes them as the system actor."""

    def __init__(self, state_machine: BookingStateMachine, enabled: bool | None = None) -> None:
        self.state_machine = state_machine
        self.enabled = settings.auto_completion_enabled if enabled is None else enabled

    @property
    def grace_period(self) -> timedelta:
        return self.state_machine.grace_period

    def is_due(self, booking: Booking, now_local: datetime) -> bool:
        return now_local >= booking.ends_at + self.grace_period

    async def find_candidates(self) -> list[Booking]:
        """Confirmed bookings whose slot has ended, ignoring the grace period."""
        now_local = to_local_naive(self.state_machine.clock())
        async with self.state_machine.session_factory() as session:
            return await BookingStore(session).select_auto_completion_candidates(now_local)

    async def eligible(self) -> list[Booking]:
        """Candidates past their grace period (dry run of ``run``)."""
        now_local = to_local_naive(self.state_machine.clock())
        return [b for b in await self.find_candidates() if self.is_due(b, now_local)]

    async def run(self) -> AutoCompletionReport:
        now = self.state_machine.clock()
        now_local = to_local_naive(now)
        report = AutoCompletionReport(started_at=now)

        candidates = await self.find_candidates()
        report.candidates = len(candidates)

        for booking in candidates:
            if not self.is_due(booking, now_local):
                report.skipped.append(booking.id)
                continue
            try:
                result = await self.state_machine.complete(
                    booking.id, SYSTEM_ACTOR, reason=AUTO_COMPLETION_REASON
                )
            except Exception:
                logger.exception("Auto-completion crashed for booking %s", booking.id)
                report.failed[booking.id] = "UNEXPECTED_ERROR"
                continue

            if result.success:
                report.completed.append(booking.id)
            elif result.error_code == "INVALID_TRANSITION":
                # Moved on since it was selected (cancelled or completed by staff)
                report.skipped.append(booking.id)
            else:
                logger.error(
                    "Auto-completion failed for booking %s: %s", booking.id, result.error_code
                )
                report.failed[booking.id] = result.error_code or "UNKNOWN"

        logger.info(
            "Auto-completion run: %d candidates, %d completed, %d skipped, %d failed",
            report.candidates,
            report.completed_count,
            len(report.skipped),
            len(report.failed),
        )
        return report

    async def stats(self, days: int = 7) -> dict[str, Any]:
        """Completion counts over the last ``days`` days.

        A completed booking with no ``completed_by`` was completed by the system.
        """
        now = self.state_machine.clock()
        since = now - timedelta(days=days)
        async with self.state_machine.session_factory() as session:
            result = await session.execute(
                select(Booking.completed_at, Booking.completed_by).where(
                    Booking.status == COMPLETED,
                    Booking.completed_at >= since,
                )
            )
            rows = result.all()

        total = len(rows)
        auto = sum(1 for _, completed_by in rows if completed_by is None)
        daily = Counter(
            to_local_naive(completed_at).date().isoformat()
            for completed_at, completed_by in rows
            if completed_by is None
        )
        return {
            "period_days": days,
            "total_completed": total,
            "auto_completed": auto,
            "manual_completed": total - auto,
            "auto_completion_percentage": round(auto / total * 100, 2) if total else 0.0,
            "daily_auto_completions": dict(sorted(daily.items())),
        }

    def config(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "interval_minutes": settings.auto_completion_interval_minutes,
            "schedule": f"*/{settings.auto_completion_interval_minutes} * * * *",
            "timezone": settings.timezone,
            "grace_period_minutes": int(self.grace_period.total_seconds() // 60),
        }
