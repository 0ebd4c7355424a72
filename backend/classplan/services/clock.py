"""Time helpers shared by scheduling and CPR tracking.

Instants are kept as aware UTC datetimes. SQLite hands DateTime columns back
naive, so anything read from the database goes through ``as_utc`` before it
is compared.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator
from zoneinfo import ZoneInfo

from classplan.core.config import get_settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def institution_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def combine_local(day: date, clock_time: str) -> datetime:
    """Combine a calendar day with an HH:MM wall-clock time in the institution zone."""
    hours, minutes = (int(part) for part in clock_time.split(":"))
    local = datetime.combine(day, time(hours, minutes), tzinfo=institution_zone())
    return local.astimezone(timezone.utc)


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def local_date(value: datetime) -> date:
    return as_utc(value).astimezone(institution_zone()).date()


def end_of_local_day(value: datetime) -> datetime:
    local_day = local_date(value)
    closing = datetime.combine(local_day, time(23, 59, 59, 999999), tzinfo=institution_zone())
    return closing.astimezone(timezone.utc)


def format_slot(value: datetime) -> str:
    """Human readable local timestamp, e.g. 'Monday, October 19, 2026 at 09:00 AM'."""
    local = as_utc(value).astimezone(institution_zone())
    return local.strftime("%A, %B %d, %Y at %I:%M %p")


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Half-open interval overlap: [start, end) and [other_start, other_end)."""
    return as_utc(other_start) < as_utc(end) and as_utc(other_end) > as_utc(start)
