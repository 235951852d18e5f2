"""Conversions between persisted UTC instants and local calendar dates.

Instants are stored in UTC; everything the user sees is a calendar date in the
configured local timezone. Any comparison that mixes the two goes through
``to_local_date`` first.
"""

import calendar
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from config import get_settings

MONDAY = 0
SUNDAY = 6

_LOCAL_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

Instant = Union[str, datetime]


def local_tz() -> ZoneInfo:
    return get_settings().tz


def local_today(tz: Optional[ZoneInfo] = None) -> date:
    return datetime.now(tz or local_tz()).date()


def to_utc_datetime(local_date: date, *, hour: Optional[int] = None) -> datetime:
    """Pin a calendar date to a stable UTC time of day.

    Midday UTC keeps the same calendar day for every zone between UTC-11 and
    UTC+11, so the stored instant always reads back as the date it came from.
    """
    if isinstance(local_date, datetime):
        local_date = local_date.date()
    if hour is None:
        hour = get_settings().instant_hour
    return datetime.combine(local_date, time(hour, 0), tzinfo=timezone.utc)


def format_instant(instant: datetime) -> str:
    instant = _as_utc(instant)
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_utc_instant(local_date: date, *, hour: Optional[int] = None) -> str:
    return format_instant(to_utc_datetime(local_date, hour=hour))


def parse_local_date(value: str) -> date:
    if not isinstance(value, str) or not _LOCAL_DATE_RE.match(value.strip()):
        raise ValueError(f"Invalid date (expected YYYY-MM-DD): {value!r}")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid date: {value!r}") from exc


def parse_instant(value: Instant) -> datetime:
    """Parse an ISO-8601 instant into an aware UTC datetime.

    Accepts a trailing ``Z``. Naive values are read as UTC, which is how the
    database hands them back.
    """
    if isinstance(value, datetime):
        return _as_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid instant: {value!r}")
    raw = value.strip()
    if _LOCAL_DATE_RE.match(raw):
        # A bare calendar date is local, never UTC midnight.
        return to_utc_datetime(parse_local_date(raw))
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid instant: {value!r}") from exc
    return _as_utc(parsed)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_local_date(instant: Instant, tz: Optional[ZoneInfo] = None) -> date:
    return parse_instant(instant).astimezone(tz or local_tz()).date()


def is_same_day(
    instant: Instant, local_date: date, tz: Optional[ZoneInfo] = None
) -> bool:
    return to_local_date(instant, tz) == local_date


def _week_start_default(week_starts_on: Optional[int]) -> int:
    if week_starts_on is None:
        return get_settings().week_start_weekday
    return week_starts_on


def start_of_week(d: date, week_starts_on: Optional[int] = SUNDAY) -> date:
    week_starts_on = _week_start_default(week_starts_on)
    if isinstance(d, datetime):
        d = d.date()
    return d - timedelta(days=(d.weekday() - week_starts_on) % 7)


def end_of_week(d: date, week_starts_on: Optional[int] = SUNDAY) -> date:
    return start_of_week(d, week_starts_on) + timedelta(days=6)


def is_same_week(
    a: date, b: date, week_starts_on: Optional[int] = SUNDAY
) -> bool:
    return start_of_week(a, week_starts_on) == start_of_week(b, week_starts_on)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_start(year: int, month: int) -> date:
    return date(year, month, 1)


def month_end(year: int, month: int) -> date:
    return date(year, month, days_in_month(year, month))


def shift_month(year: int, month: int, count: int) -> tuple[int, int]:
    """Move ``count`` months from (year, month), carrying across years."""
    month_index = (year * 12) + (month - 1) + count
    return month_index // 12, (month_index % 12) + 1
