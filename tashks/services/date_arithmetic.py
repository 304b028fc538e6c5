"""UTC date arithmetic for recurrence intervals.

All values are handled in UTC. Calendar dates are ISO ``YYYY-MM-DD`` strings;
timestamps are ISO 8601 date-times, and naive timestamps are read as UTC.

Month-end policy: adding months or years clamps the day of month to the last
day of the target month, so 2026-01-31 + 1 month is 2026-02-28 and a
29 February anchor lands on 28 February in non-leap years.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Union

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from tashks.models.recurrence import Frequency, RecurrenceInterval
from tashks.utils.errors import InvalidDate


def add_interval(value: Union[date, datetime], interval: RecurrenceInterval) -> Union[date, datetime]:
    """Add one recurrence step to a date or UTC datetime."""
    if interval.frequency == Frequency.DAILY:
        return value + timedelta(days=interval.interval)
    if interval.frequency == Frequency.WEEKLY:
        return value + timedelta(days=interval.interval * 7)
    if interval.frequency == Frequency.MONTHLY:
        return value + relativedelta(months=interval.interval)
    if interval.frequency == Frequency.YEARLY:
        return value + relativedelta(years=interval.interval)
    raise ValueError(f"Unknown frequency: {interval.frequency}")


def parse_iso_date(value: str, label: str = "date") -> date:
    """Parse a ``YYYY-MM-DD`` calendar date."""
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise InvalidDate(f"Invalid ISO {label}: {value!r}") from e


def parse_iso_timestamp(value: str, label: str = "timestamp") -> datetime:
    """Parse an ISO 8601 timestamp into an aware UTC datetime."""
    try:
        parsed = isoparse(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidDate(f"Invalid ISO {label}: {value!r}") from e
    return ensure_utc(parsed)


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_midnight(value: date) -> datetime:
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def to_iso_timestamp(value: datetime) -> str:
    """Format as a UTC ISO timestamp with a ``Z`` suffix (milliseconds only when present)."""
    value = ensure_utc(value)
    timespec = "seconds" if value.microsecond == 0 else "milliseconds"
    return value.replace(tzinfo=None).isoformat(timespec=timespec) + "Z"


def utc_date_of(value: datetime) -> str:
    """Calendar date (UTC) of a datetime, as ``YYYY-MM-DD``."""
    return ensure_utc(value).date().isoformat()


def shift_calendar_date(iso_date: str, interval: RecurrenceInterval) -> str:
    """Shift a calendar date by one recurrence step."""
    parsed = parse_iso_date(iso_date)
    return add_interval(parsed, interval).isoformat()


def shift_timestamp_to_calendar_date(iso_timestamp: str, interval: RecurrenceInterval) -> str:
    """Shift a timestamp by one recurrence step and return the UTC calendar date."""
    parsed = parse_iso_timestamp(iso_timestamp)
    return utc_date_of(add_interval(parsed, interval))
