"""SoberDay: timezone-correct sobriety day counts with local-midnight refresh."""

from __future__ import annotations

from .config import BaseConfig
from .context import AppContext, create_app_context
from .errors import DataFetchError, SoberDayError
from .scheduler import MidnightScheduler, milliseconds_until_next_local_midnight
from .services.controller import DaysSoberController, RecomputeTrigger
from .services.day_count import calendar_days_between
from .services.streaks import StreakState, compose
from .services.timezones import resolve_timezone

__all__ = [
    "AppContext",
    "BaseConfig",
    "DataFetchError",
    "DaysSoberController",
    "MidnightScheduler",
    "RecomputeTrigger",
    "SoberDayError",
    "StreakState",
    "calendar_days_between",
    "compose",
    "create_app_context",
    "milliseconds_until_next_local_midnight",
    "resolve_timezone",
]
