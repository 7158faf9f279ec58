"""Local-midnight refresh timer.

A single one-shot APScheduler job waits for the next 00:00 in a timezone,
calls back, then schedules the following midnight. Each boundary is computed
from that date's own UTC offset, so the interval stretches or shrinks by an
hour around DST changes instead of drifting.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Optional
from uuid import uuid4

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from .services.day_count import ensure_aware, local_date, local_midnight, utc_now
from .services.timezones import TimezoneLike, as_zone

logger = logging.getLogger("soberday.scheduler")

DEFAULT_FLOOR_MS = 1000
MIDNIGHT_JOB_ID = "local_midnight_refresh"
_ONE_MS = timedelta(milliseconds=1)


def next_local_midnight(tz: TimezoneLike, now: Optional[datetime] = None) -> datetime:
    """UTC instant of the first 00:00 in ``tz`` strictly after ``now``."""

    zone = as_zone(tz)
    current = ensure_aware(now if now is not None else utc_now())
    tomorrow = local_date(current, zone) + timedelta(days=1)
    return local_midnight(tomorrow, zone)


def _delay_ms(now: datetime, target: datetime, floor_ms: int) -> int:
    # Round up so the timer never lands a fraction of a millisecond early.
    remaining = -(-(target - now) // _ONE_MS)
    return max(floor_ms, remaining)


def milliseconds_until_next_local_midnight(
    tz: TimezoneLike,
    now: Optional[datetime] = None,
    *,
    floor_ms: int = DEFAULT_FLOOR_MS,
) -> int:
    """Milliseconds from ``now`` until the next local midnight in ``tz``.

    Never less than ``floor_ms``, which absorbs clock skew right at the
    boundary.
    """

    current = ensure_aware(now if now is not None else utc_now())
    return _delay_ms(current, next_local_midnight(tz, current), floor_ms)


class MidnightScheduler:
    """Owns at most one pending local-midnight job.

    ``arm`` replaces whatever is pending; ``disarm`` cancels it. Callbacks
    carry the generation they were armed under, so one that was already in
    flight when the timer was disarmed or re-armed does nothing.
    """

    def __init__(
        self,
        backend: Any = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        floor_ms: int = DEFAULT_FLOOR_MS,
    ):
        """Initialize the timer.

        Args:
            backend: APScheduler scheduler to add jobs to; a private
                ``BackgroundScheduler`` is started lazily when omitted
            clock: Source of the current aware instant. Only valid with an
                injected ``backend`` that runs on the same clock; the default
                backend fires on wall time
            floor_ms: Minimum delay for any scheduled firing
        """
        if floor_ms <= 0:
            raise ValueError("floor_ms must be positive")
        if clock is not None and backend is None:
            raise ValueError("a custom clock requires an injected backend")
        self._backend = backend
        self._owns_backend = backend is None
        self._clock = clock or utc_now
        self.floor_ms = floor_ms
        self.job_id = f"{MIDNIGHT_JOB_ID}:{uuid4().hex[:12]}"

        self._lock = threading.Lock()
        self._job: Any = None
        self._generation = 0
        self._timezone: Optional[TimezoneLike] = None
        self._on_fire: Optional[Callable[[], None]] = None
        self._target: Optional[datetime] = None

    @property
    def armed(self) -> bool:
        return self._job is not None

    @property
    def timezone(self) -> Optional[TimezoneLike]:
        return self._timezone

    @property
    def next_fire_at(self) -> Optional[datetime]:
        """The local midnight currently awaited, as a UTC instant."""
        return self._target if self._job is not None else None

    def arm(self, tz: TimezoneLike, on_fire: Callable[[], None]) -> None:
        """Cancel any pending job and wait for the next local midnight in ``tz``."""
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            self._timezone = tz
            self._on_fire = on_fire
            self._schedule_locked(self._generation, after=None)

    def disarm(self) -> None:
        """Cancel the pending job. Safe to call when idle."""
        with self._lock:
            self._generation += 1
            was_armed = self._cancel_locked()
            self._timezone = None
            self._on_fire = None
            self._target = None
        if was_armed:
            logger.info("Midnight refresh disarmed", extra={"job_id": self.job_id})

    def shutdown(self) -> None:
        """Disarm and stop the backend if this instance started it."""
        self.disarm()
        if self._owns_backend and self._backend is not None and self._backend.running:
            self._backend.shutdown(wait=False)
            logger.info("Midnight scheduler stopped")

    def _ensure_backend(self) -> Any:
        if self._backend is None:
            self._backend = BackgroundScheduler(timezone="UTC")
        if self._owns_backend and not self._backend.running:
            self._backend.start()
        return self._backend

    def _cancel_locked(self) -> bool:
        if self._job is None:
            return False
        self._job = None
        try:
            self._backend.remove_job(self.job_id)
        except JobLookupError:
            # Already ran or was removed with the backend.
            pass
        return True

    def _schedule_locked(self, generation: int, *, after: Optional[datetime]) -> None:
        now = ensure_aware(self._clock())
        reference = max(now, after) if after is not None else now
        target = next_local_midnight(self._timezone, reference)
        delay_ms = _delay_ms(now, target, self.floor_ms)
        run_at = now + timedelta(milliseconds=delay_ms)

        backend = self._ensure_backend()
        self._job = backend.add_job(
            self._fire,
            trigger=DateTrigger(run_date=run_at),
            args=(generation,),
            id=self.job_id,
            name="Local midnight refresh",
            replace_existing=True,
            # A suspended host must still fire late rather than never.
            misfire_grace_time=None,
            coalesce=True,
        )
        self._target = target
        logger.info(
            "Midnight refresh armed",
            extra={
                "timezone": str(self._timezone),
                "target": target.isoformat(),
                "delay_ms": delay_ms,
            },
        )

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._job is None:
                logger.debug("Ignoring stale midnight callback", extra={"generation": generation})
                return
            self._job = None
            now = ensure_aware(self._clock())
            if self._target is not None and now < self._target:
                # Woke up early; wait for the same boundary.
                self._schedule_locked(generation, after=None)
                return
            on_fire = self._on_fire
            reached = self._target

        logger.info("Local midnight reached", extra={"boundary": reached.isoformat() if reached else None})
        try:
            if on_fire is not None:
                on_fire()
        except Exception:
            logger.exception("Midnight refresh callback failed")

        with self._lock:
            # Disarmed or re-armed while the callback ran.
            if generation != self._generation:
                return
            self._schedule_locked(generation, after=reached)


__all__ = [
    "DEFAULT_FLOOR_MS",
    "MidnightScheduler",
    "milliseconds_until_next_local_midnight",
    "next_local_midnight",
]
