"""Calendar-day arithmetic in a specific timezone."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional, Union

from .timezones import TimezoneLike, as_zone

DateLike = Union[date, datetime, str]


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(instant: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if instant.tzinfo is None or instant.utcoffset() is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def local_date(instant: datetime, tz: Optional[TimezoneLike] = None) -> date:
    """Wall-clock calendar date of ``instant`` in ``tz``."""
    return ensure_aware(instant).astimezone(as_zone(tz)).date()


def local_midnight(day: date, tz: Optional[TimezoneLike] = None) -> datetime:
    """UTC instant at which ``day`` begins in ``tz``.

    The offset is looked up for ``day`` itself. When 00:00 falls inside a DST
    gap the result is the first instant of the new day.
    """
    wall = datetime.combine(day, time.min, tzinfo=as_zone(tz))
    return wall.astimezone(timezone.utc)


def to_calendar_date(value: DateLike, tz: Optional[TimezoneLike] = None) -> date:
    """Normalize a date, ISO string or instant to a calendar date in ``tz``."""
    if isinstance(value, datetime):
        return local_date(value, tz)
    if isinstance(value, date):
        return value
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        # Full timestamps ("2024-01-01T05:00:00Z") are instants.
        return local_date(datetime.fromisoformat(text.replace("Z", "+00:00")), tz)


def calendar_days_between(
    start_date: DateLike,
    now: Optional[datetime] = None,
    tz: Optional[TimezoneLike] = None,
) -> int:
    """Whole local calendar days from ``start_date`` to ``now`` in ``tz``.

    Both sides are reduced to dates before subtracting, so a 23 or 25 hour
    DST day still counts as one. Start dates in the future yield 0.

    >>> from datetime import datetime, timezone
    >>> calendar_days_between("2024-03-01", datetime(2024, 3, 15, 12, tzinfo=timezone.utc), "America/New_York")
    14
    """
    zone = as_zone(tz)
    start = to_calendar_date(start_date, zone)
    today = local_date(now if now is not None else utc_now(), zone)
    return max(0, (today - start).days)


__all__ = [
    "DateLike",
    "calendar_days_between",
    "ensure_aware",
    "local_date",
    "local_midnight",
    "to_calendar_date",
    "utc_now",
]
