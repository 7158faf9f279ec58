"""Sobriety milestones and day-count labels."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from .streaks import StreakState


@dataclass(frozen=True)
class Milestone:
    days: int
    label: str


@dataclass(frozen=True)
class ReachedMilestone:
    milestone: Milestone
    reached_on: date


# Counted from the current streak start, so a reset starts them over.
SOBRIETY_MILESTONES: tuple[Milestone, ...] = (
    Milestone(7, "1 Week Sober"),
    Milestone(30, "30 Days Sober"),
    Milestone(60, "60 Days Sober"),
    Milestone(90, "90 Days Sober"),
    Milestone(180, "6 Months Sober"),
    Milestone(365, "1 Year Sober"),
    Milestone(730, "2 Years Sober"),
    Milestone(1095, "3 Years Sober"),
)


def format_day_count(days: int) -> str:
    """Return ``"1 Day"`` or ``"N Days"``."""

    return f"{days} {'Day' if days == 1 else 'Days'}"


def reached_milestones(state: StreakState) -> list[ReachedMilestone]:
    """Milestones reached in the current streak, most recent first."""

    start = state.current_streak_start_date
    if start is None:
        return []
    reached = [
        ReachedMilestone(milestone=m, reached_on=start + timedelta(days=m.days))
        for m in SOBRIETY_MILESTONES
        if state.current_streak_days >= m.days
    ]
    reached.sort(key=lambda r: r.reached_on, reverse=True)
    return reached


def next_milestone(state: StreakState) -> Optional[tuple[Milestone, int]]:
    """The next milestone and the days remaining, or None past the last one."""

    if state.current_streak_start_date is None:
        return None
    for milestone in SOBRIETY_MILESTONES:
        if state.current_streak_days < milestone.days:
            return milestone, milestone.days - state.current_streak_days
    return None


__all__ = [
    "Milestone",
    "ReachedMilestone",
    "SOBRIETY_MILESTONES",
    "format_day_count",
    "next_milestone",
    "reached_milestones",
]
