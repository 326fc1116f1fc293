"""
Tests for FieldBook: automatic completion of ended bookings
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from fieldbook import tasks
from fieldbook.core.locking import SlotLockRegistry
from fieldbook.domain.errors import PersistenceFailure
from fieldbook.domain.transition import TransitionResult
from fieldbook.models import Booking, BookingHistory
from fieldbook.services.auto_completion_service import AutoCompletionEngine, AutoCompletionReport
from fieldbook.services.booking_service import AUTO_COMPLETION_REASON, BookingStateMachine
from fieldbook.worker import celery_app
from conftest import DAY, GRACE, at


class FlakyStateMachine(BookingStateMachine):
    """Fails completion for chosen bookings."""

    def __init__(self, *args, failing=(), crashing=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.failing = set(failing)
        self.crashing = set(crashing)

    async def complete(self, booking_id, actor, reason=None, notes=None):
        if booking_id in self.crashing:
            raise RuntimeError("worker lost")
        if booking_id in self.failing:
            return TransitionResult.failed(PersistenceFailure("disk full"))
        return await super().complete(booking_id, actor, reason=reason, notes=notes)


@pytest.fixture
def engine_(state_machine):
    return AutoCompletionEngine(state_machine, enabled=True)


async def _status(session_factory, booking_id):
    async with session_factory() as session:
        return (await session.get(Booking, booking_id)).status


class TestAutoCompletionRun:
    async def test_completes_booking_after_grace(self, engine_, clock, session_factory, confirmed_booking):
        booking = await confirmed_booking("14:00", "16:00")
        clock.set(at(16) + GRACE)

        report = await engine_.run()

        assert report.completed == [booking.id]
        assert report.completed_count == 1
        assert await _status(session_factory, booking.id) == "completed"

    async def test_grace_period_not_yet_elapsed(self, engine_, clock, session_factory, confirmed_booking):
        booking = await confirmed_booking("14:00", "16:00")
        clock.set(at(16, 10))

        report = await engine_.run()

        assert report.candidates == 1
        assert report.skipped == [booking.id]
        assert report.completed == []
        assert await _status(session_factory, booking.id) == "confirmed"

    async def test_slot_not_ended_is_not_candidate(self, engine_, clock, confirmed_booking):
        await confirmed_booking("14:00", "16:00")
        clock.set(at(15))

        report = await engine_.run()
        assert report.candidates == 0

    async def test_pending_bookings_untouched(self, engine_, clock, state_machine, seed, make_draft, session_factory):
        created = await state_machine.create(make_draft("14:00", "16:00"), seed.actor("customer"))
        clock.set(at(20))

        report = await engine_.run()

        assert report.candidates == 0
        assert await _status(session_factory, created.booking.id) == "pending"

    async def test_previous_days_are_candidates(self, engine_, clock, confirmed_booking):
        booking = await confirmed_booking("20:00", "22:00")
        clock.set(at(1, 0, day=DAY + timedelta(days=1)))

        report = await engine_.run()
        assert report.completed == [booking.id]

    async def test_second_run_is_noop(self, engine_, clock, session_factory, confirmed_booking):
        booking = await confirmed_booking()
        clock.set(at(17))

        first = await engine_.run()
        second = await engine_.run()

        assert first.completed == [booking.id]
        assert second.candidates == 0
        assert second.completed == []
        async with session_factory() as session:
            rows = (
                await session.execute(
                    select(BookingHistory).where(BookingHistory.new_status == "completed")
                )
            ).scalars().all()
        assert len(rows) == 1

    async def test_history_marks_system_actor(self, engine_, clock, session_factory, confirmed_booking):
        booking = await confirmed_booking()
        clock.set(at(17))
        await engine_.run()

        async with session_factory() as session:
            completed = await session.get(Booking, booking.id)
            row = (
                await session.execute(
                    select(BookingHistory)
                    .where(BookingHistory.booking_id == booking.id)
                    .order_by(BookingHistory.id.desc())
                )
            ).scalars().first()

        assert completed.completed_by is None
        assert completed.completed_at is not None
        assert row.actor_type == "system"
        assert row.reason == AUTO_COMPLETION_REASON

    async def test_failure_on_one_booking_does_not_stop_others(
        self, session_factory, clock, confirmed_booking
    ):
        first = await confirmed_booking("12:00", "13:00")
        second = await confirmed_booking("14:00", "16:00")
        third = await confirmed_booking("16:00", "17:00")
        flaky = FlakyStateMachine(
            session_factory,
            clock=clock,
            grace_period=GRACE,
            locks=SlotLockRegistry(),
            failing=[first.id],
            crashing=[second.id],
        )
        clock.set(at(18))

        report = await AutoCompletionEngine(flaky, enabled=True).run()

        assert report.completed == [third.id]
        assert report.failed == {first.id: "PERSISTENCE_FAILURE", second.id: "UNEXPECTED_ERROR"}
        assert await _status(session_factory, first.id) == "confirmed"
        assert await _status(session_factory, third.id) == "completed"

    async def test_booking_cancelled_after_selection_is_skipped(
        self, engine_, state_machine, clock, seed, confirmed_booking, monkeypatch
    ):
        booking = await confirmed_booking()
        clock.set(at(17))
        candidates = await engine_.find_candidates()
        await state_machine.cancel(booking.id, seed.actor("operator"), reason="No show")

        async def stale_candidates():
            return candidates

        monkeypatch.setattr(engine_, "find_candidates", stale_candidates)
        report = await engine_.run()

        assert report.skipped == [booking.id]
        assert report.failed == {}


class TestEligibleAndStats:
    async def test_eligible_is_dry_run(self, engine_, clock, session_factory, confirmed_booking):
        due = await confirmed_booking("12:00", "13:00")
        await confirmed_booking("14:00", "16:00")
        clock.set(at(16, 5))

        eligible = await engine_.eligible()

        assert [b.id for b in eligible] == [due.id]
        assert await _status(session_factory, due.id) == "confirmed"

    async def test_stats_split_auto_and_manual(self, engine_, state_machine, clock, seed, confirmed_booking):
        auto = await confirmed_booking("14:00", "16:00")
        manual = await confirmed_booking("18:00", "19:00")
        clock.set(at(18, 30))
        await state_machine.complete(manual.id, seed.actor("operator"))
        report = await engine_.run()

        stats = await engine_.stats(days=7)

        assert report.completed == [auto.id]
        assert stats["total_completed"] == 2
        assert stats["auto_completed"] == 1
        assert stats["manual_completed"] == 1
        assert stats["auto_completion_percentage"] == 50.0
        assert stats["daily_auto_completions"] == {DAY.isoformat(): 1}

    async def test_stats_empty(self, engine_):
        stats = await engine_.stats(days=7)
        assert stats["total_completed"] == 0
        assert stats["auto_completion_percentage"] == 0.0

    def test_config(self, engine_):
        config = engine_.config()
        assert config["enabled"] is True
        assert config["grace_period_minutes"] == 15
        assert config["timezone"] == "Asia/Jakarta"
        assert config["schedule"] == f"*/{config['interval_minutes']} * * * *"

    def test_report_as_dict(self):
        report = AutoCompletionReport(started_at=at(17), candidates=2, completed=[1], failed={2: "X"})
        data = report.as_dict()
        assert data["completed_count"] == 1
        assert data["failed"] == {"2": "X"}


class TestScheduledTask:
    def test_beat_schedule_registered(self):
        entry = celery_app.conf.beat_schedule["auto-complete-bookings"]
        assert entry["task"] == "fieldbook.tasks.auto_complete_bookings"

    def test_disabled_task_skips_run(self, monkeypatch):
        monkeypatch.setattr(tasks.settings, "auto_completion_enabled", False)
        assert tasks.auto_complete_bookings() == {"status": "disabled"}

    def test_enabled_task_returns_report(self, monkeypatch):
        async def fake_run():
            return {"candidates": 0, "completed_count": 0}

        monkeypatch.setattr(tasks.settings, "auto_completion_enabled", True)
        monkeypatch.setattr(tasks, "_auto_complete_bookings", fake_run)

        result = tasks.auto_complete_bookings()

        assert result == {"status": "success", "candidates": 0, "completed_count": 0}
