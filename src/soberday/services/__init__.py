"""Service module exports.

``controller`` is imported directly by callers; it depends on the scheduler,
which itself builds on ``day_count``.
"""

from . import (
    day_count,
    milestones,
    streaks,
    timezones,
)

__all__ = [
    "day_count",
    "milestones",
    "streaks",
    "timezones",
]
