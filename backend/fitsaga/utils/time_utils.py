from __future__ import annotations

import calendar
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    SQLite hands back naive datetimes for ``DateTime(timezone=True)`` columns;
    those are stored as UTC, so naive values are tagged rather than converted.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    """Signed number of hours from ``start`` to ``end``."""
    return (as_utc(end) - as_utc(start)).total_seconds() / 3600


def add_months(value: datetime, months: int = 1) -> datetime:
    """
    Shift by calendar months, clamping the day to the target month's length.

    Jan 31 + 1 month -> Feb 28 (or 29).
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
