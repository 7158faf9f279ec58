"""Exception types surfaced by the streak engine."""

from __future__ import annotations


class SoberDayError(Exception):
    """Base class for errors raised by this package."""


class DataFetchError(SoberDayError):
    """The profile or reset-event store could not answer a query.

    Controllers report this through ``StreakState.error`` instead of raising.
    """

    def __init__(self, message: str, *, user_id: str | None = None) -> None:
        super().__init__(message)
        self.user_id = user_id


__all__ = ["SoberDayError", "DataFetchError"]
