"""Auto-completion admin schemas."""

from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict


class AutoCompletionRunResponse(BaseModel):
    """Result of a manually triggered run."""

    started_at: datetime
    candidates: int
    completed_count: int
    completed: list[int]
    skipped: list[int]
    failed: dict[str, str]


class EligibleBooking(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    booking_number: str
    field_id: int
    date: date
    start_time: time
    end_time: time
    name: str
    total_amount: int
    payment_status: str


class EligibleBookingsResponse(BaseModel):
    count: int
    grace_period_minutes: int
    bookings: list[EligibleBooking]


class AutoCompletionStats(BaseModel):
    period_days: int
    total_completed: int
    auto_completed: int
    manual_completed: int
    auto_completion_percentage: float
    daily_auto_completions: dict[str, int]


class AutoCompletionConfig(BaseModel):
    enabled: bool
    interval_minutes: int
    schedule: str
    timezone: str
    grace_period_minutes: int
