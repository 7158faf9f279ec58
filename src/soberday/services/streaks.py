"""Streak and journey composition from a profile and its latest reset event."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, Optional, Protocol

from .day_count import calendar_days_between, to_calendar_date, utc_now
from .timezones import load_zone, resolve_timezone

_UTC = timezone.utc


class ProfileLike(Protocol):
    sobriety_date: Optional[date]
    timezone: Optional[str]


class ResetEventLike(Protocol):
    occurred_on: date
    restart_on: date


@dataclass(frozen=True)
class StreakState:
    """Derived day counts for one user at one instant. Never persisted."""

    current_streak_days: int = 0
    journey_days: int = 0
    journey_start_date: Optional[date] = None
    current_streak_start_date: Optional[date] = None
    has_reset_events: bool = False
    most_recent_reset_event: Optional[Any] = None
    loading: bool = False
    error: Optional[Exception] = None
    timezone: Optional[str] = None

    @property
    def days_sober(self) -> int:
        return self.current_streak_days

    def with_status(self, *, loading: bool, error: Optional[Exception]) -> "StreakState":
        return replace(self, loading=loading, error=error)

    def to_dict(self) -> Dict[str, Any]:
        event = self.most_recent_reset_event
        return {
            "current_streak_days": self.current_streak_days,
            "journey_days": self.journey_days,
            "journey_start_date": _iso(self.journey_start_date),
            "current_streak_start_date": _iso(self.current_streak_start_date),
            "has_reset_events": self.has_reset_events,
            "most_recent_reset_event": _event_dict(event) if event is not None else None,
            "loading": self.loading,
            "error": str(self.error) if self.error is not None else None,
            "timezone": self.timezone,
        }


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _event_dict(event: Any) -> Dict[str, Any]:
    if hasattr(event, "to_dict"):
        return event.to_dict()
    return {
        "occurred_on": event.occurred_on.isoformat(),
        "restart_on": event.restart_on.isoformat(),
    }


def _created_key(event: Any) -> datetime:
    created = getattr(event, "created_at", None)
    if created is None:
        return datetime.min.replace(tzinfo=_UTC)
    if created.tzinfo is None:
        # SQLite hands back naive UTC timestamps.
        return created.replace(tzinfo=_UTC)
    return created


def most_recent_reset_event(events: Iterable[ResetEventLike]) -> Optional[ResetEventLike]:
    """Pick the latest event by ``occurred_on``.

    Ties go to the later ``restart_on``, then the later ``created_at``, then
    the higher id, matching the repository's query order.
    """
    return max(
        events,
        key=lambda e: (e.occurred_on, e.restart_on, _created_key(e), getattr(e, "id", None) or 0),
        default=None,
    )


def compose(
    profile: Optional[ProfileLike],
    reset_event: Optional[ResetEventLike],
    now: Optional[datetime] = None,
    *,
    device_timezone: Optional[str] = None,
) -> StreakState:
    """Compute journey and current-streak day counts.

    The journey always starts at the profile's sobriety date; the current
    streak starts at the reset event's restart date when one exists. Without
    a sobriety date both counts are 0 and both start dates are None.
    """
    requested = resolve_timezone(profile.timezone if profile is not None else None, device_timezone)
    tz_name, zone = load_zone(requested, fallback=device_timezone)

    sobriety_date = profile.sobriety_date if profile is not None else None
    if sobriety_date is None:
        return StreakState(
            has_reset_events=reset_event is not None,
            most_recent_reset_event=reset_event,
            timezone=tz_name,
        )

    instant = now if now is not None else utc_now()
    journey_start = to_calendar_date(sobriety_date, zone)
    streak_start = (
        to_calendar_date(reset_event.restart_on, zone) if reset_event is not None else journey_start
    )

    return StreakState(
        current_streak_days=calendar_days_between(streak_start, instant, zone),
        journey_days=calendar_days_between(journey_start, instant, zone),
        journey_start_date=journey_start,
        current_streak_start_date=streak_start,
        has_reset_events=reset_event is not None,
        most_recent_reset_event=reset_event,
        timezone=tz_name,
    )


__all__ = ["StreakState", "compose", "most_recent_reset_event"]
