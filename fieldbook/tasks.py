"""Celery background tasks."""

import asyncio
import logging

from celery import shared_task

from fieldbook.config import settings
from fieldbook.database import async_session_maker, engine
from fieldbook.services.auto_completion_service import AutoCompletionEngine
from fieldbook.services.booking_service import BookingStateMachine

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


# ==================== AUTO-COMPLETION ====================


@shared_task(bind=True, max_retries=3)
def auto_complete_bookings(self):
    """Complete confirmed bookings whose slot ended more than the grace period ago.

    Scheduled by Celery beat every ``AUTO_COMPLETION_INTERVAL_MINUTES``.
    Per-booking failures are reported, not retried; only a failure of the
    whole run (e.g. database unreachable) triggers a retry.
    """
    if not settings.auto_completion_enabled:
        logger.info("Auto-completion disabled; skipping run")
        return {"status": "disabled"}
    try:
        report = run_async(_auto_complete_bookings())
    except Exception as exc:
        logger.exception("Auto-completion run failed")
        raise self.retry(exc=exc, countdown=60)
    return {"status": "success", **report}


async def _auto_complete_bookings() -> dict:
    """Async implementation of the auto-completion run."""
    try:
        auto_engine = AutoCompletionEngine(BookingStateMachine(async_session_maker))
        report = await auto_engine.run()
        return report.as_dict()
    finally:
        # Pool connections are bound to this run's event loop
        await engine.dispose()
