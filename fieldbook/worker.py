"""Celery worker configuration.

Runs the periodic booking auto-completion job.
"""

from celery import Celery
from celery.schedules import crontab

from fieldbook.config import settings

# Create Celery app
celery_app = Celery(
    "fieldbook_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["fieldbook.tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.timezone,
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,

    # Results expire after 1 hour
    result_expires=3600,

    beat_schedule={
        "auto-complete-bookings": {
            "task": "fieldbook.tasks.auto_complete_bookings",
            "schedule": crontab(minute=f"*/{settings.auto_completion_interval_minutes}"),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
