"""Local-time helpers.

Booking dates and slot times are wall-clock values in the venue's timezone
(``settings.timezone``). Services take a ``Clock`` so tests can pin "now".
"""

from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

from fieldbook.config import settings

Clock = Callable[[], datetime]


def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def local_now() -> datetime:
    """Timezone-aware current time in the venue's timezone."""
    return datetime.now(local_tz())


def to_local_naive(moment: datetime) -> datetime:
    """Wall-clock equivalent of ``moment``, comparable with booking slots."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(local_tz()).replace(tzinfo=None)


def fixed_clock(moment: datetime) -> Clock:
    """Clock that always returns ``moment`` (localized if naive)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=local_tz())
    return lambda: moment
