"""
UTC time helpers.

Every day boundary in the engine is a UTC day. Naive datetimes coming back
from SQLite are treated as UTC.
"""

import calendar
from datetime import UTC, date, datetime, time, timedelta
from typing import Iterator

# Last representable instant of an interval, 1ms before the next boundary
_END_OF_INTERVAL = timedelta(milliseconds=1)


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(UTC)


def utc_today() -> date:
    """Current UTC calendar date."""
    return utc_now().date()


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are assumed UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def day_end(day: date) -> datetime:
    """23:59:59.999 UTC on ``day``."""
    return day_start(day) + timedelta(days=1) - _END_OF_INTERVAL


def hour_bounds(day: date, hour: int) -> tuple[datetime, datetime]:
    """Inclusive bounds [hh:00:00.000, hh:59:59.999] of one UTC hour."""
    start = day_start(day) + timedelta(hours=hour)
    return start, start + timedelta(hours=1) - _END_OF_INTERVAL


def range_bounds(start_date: date, end_date: date) -> tuple[datetime, datetime]:
    """Inclusive datetime bounds covering full UTC days from start to end."""
    return day_start(start_date), day_end(end_date)


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def subtract_months(day: date, months: int) -> date:
    """
    Move ``day`` back by whole calendar months, clamping the day of month.

    March 31 minus one month is February 28 (or 29 in a leap year).
    """
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string."""
    return date.fromisoformat(value)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted) into aware UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(value))


def format_hm(value: datetime) -> str:
    """HH:MM of a timestamp in UTC."""
    return as_utc(value).strftime("%H:%M")
