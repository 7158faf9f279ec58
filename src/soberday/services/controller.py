"""Lifecycle owner for a user's live day counts.

The controller fetches the profile and latest reset event, composes a
``StreakState``, and keeps a midnight timer armed for the effective timezone
so counts roll over at local midnight without a re-fetch.
"""

from __future__ import annotations

import threading
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from ..errors import DataFetchError
from ..logging_config import get_logger
from ..scheduler import DEFAULT_FLOOR_MS, MidnightScheduler
from .day_count import utc_now
from .streaks import StreakState, compose

if TYPE_CHECKING:
    from ..domain.repositories import ProfileRepository, ResetEventRepository
    from ..models import ResetEvent, SobrietyProfile

logger = get_logger("controller")


class RecomputeTrigger(str, Enum):
    """Why a recomputation happened."""

    DATA_CHANGED = "data_changed"
    MIDNIGHT = "midnight"
    TIMEZONE_CHANGED = "timezone_changed"
    MANUAL = "manual"


class DaysSoberController:
    """Expose current-streak and journey counts for one target user."""

    def __init__(
        self,
        profile_repo: ProfileRepository,
        reset_event_repo: ResetEventRepository,
        *,
        current_user_id: Optional[str] = None,
        target_user_id: Optional[str] = None,
        scheduler: Optional[MidnightScheduler] = None,
        clock: Optional[Callable[[], datetime]] = None,
        device_timezone: Optional[str] = None,
        on_change: Optional[Callable[[StreakState], None]] = None,
        midnight_floor_ms: int = DEFAULT_FLOOR_MS,
    ):
        """Initialize the controller.

        Args:
            profile_repo: Source of sobriety profiles
            reset_event_repo: Source of reset events
            current_user_id: The signed-in user; the default target
            target_user_id: View another user's counts instead
            scheduler: Midnight timer; one is created and owned when omitted
            clock: Source of the current aware instant for day counts
            device_timezone: Zone used when a profile has none
            on_change: Called with every newly composed state
            midnight_floor_ms: Minimum timer delay for an owned scheduler
        """
        self.profile_repo = profile_repo
        self.reset_event_repo = reset_event_repo
        self.current_user_id = current_user_id
        self._target_user_id = target_user_id
        self._clock = clock or utc_now
        self._owns_scheduler = scheduler is None
        # An owned scheduler runs on a real BackgroundScheduler, so it keeps wall time.
        self.scheduler = scheduler or MidnightScheduler(floor_ms=midnight_floor_ms)
        self.device_timezone = device_timezone
        self._on_change = on_change

        self._lock = threading.RLock()
        self._profile: Optional[SobrietyProfile] = None
        self._reset_event: Optional[ResetEvent] = None
        self._loading = True
        self._error: Optional[Exception] = None
        self._state = StreakState(loading=True)
        self._scheduling = False
        self._armed_timezone: Optional[str] = None
        self._disposed = False

    # ---- public surface ----

    @property
    def state(self) -> StreakState:
        return self._state

    @property
    def target_user_id(self) -> Optional[str]:
        return self._target_user_id or self.current_user_id

    @property
    def is_current_user(self) -> bool:
        return self._target_user_id is None or self._target_user_id == self.current_user_id

    @property
    def disposed(self) -> bool:
        return self._disposed

    def activate(self, *, schedule: bool = True) -> StreakState:
        """Fetch data, compose the first state and arm the midnight timer.

        ``schedule=False`` computes a one-off snapshot without a timer.
        """
        if self._disposed:
            raise RuntimeError("Controller has been disposed")
        with self._lock:
            self._scheduling = schedule
        self._fetch()
        return self.recompute(RecomputeTrigger.DATA_CHANGED)

    def recompute(self, trigger: RecomputeTrigger = RecomputeTrigger.MANUAL) -> StreakState:
        """Recompose from held data and the current instant.

        Re-arms the timer when the effective timezone changed. No-op once
        disposed.
        """
        with self._lock:
            if self._disposed:
                logger.debug("Ignoring recompute after dispose", extra={"trigger": trigger.value})
                return self._state
            state = compose(
                self._profile,
                self._reset_event,
                self._clock(),
                device_timezone=self.device_timezone,
            ).with_status(loading=self._loading, error=self._error)
            self._state = state
            self._sync_timer(state.timezone)
            logger.debug(
                "Streak recomputed",
                extra={
                    "trigger": trigger.value,
                    "user_id": self.target_user_id,
                    "current_streak_days": state.current_streak_days,
                    "journey_days": state.journey_days,
                },
            )
            # Listeners see states in the order they were composed.
            self._notify(state)
        return state

    def refresh(self) -> StreakState:
        """Re-fetch after the profile or reset events were edited."""
        if self._disposed:
            return self._state
        self._fetch()
        return self.recompute(RecomputeTrigger.DATA_CHANGED)

    def set_target_user(self, user_id: Optional[str]) -> StreakState:
        """Switch to another user's counts; None returns to the current user."""
        with self._lock:
            if self._disposed or user_id == self._target_user_id:
                return self._state
            self._target_user_id = user_id
            # Never show the previous user's data under the new id.
            self._profile = None
            self._reset_event = None
            self._error = None
        return self.refresh()

    def set_device_timezone(self, tz_name: Optional[str]) -> StreakState:
        """The host zone changed; profiles without a zone follow it."""
        with self._lock:
            if self._disposed or tz_name == self.device_timezone:
                return self._state
            self.device_timezone = tz_name
        return self.recompute(RecomputeTrigger.TIMEZONE_CHANGED)

    def dispose(self) -> None:
        """Disarm the timer unconditionally; later callbacks are ignored."""
        with self._lock:
            self._disposed = True
            self._armed_timezone = None
        if self._owns_scheduler:
            self.scheduler.shutdown()
        else:
            self.scheduler.disarm()

    def __enter__(self) -> "DaysSoberController":
        self.activate()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    # ---- internals ----

    def _fetch(self) -> None:
        user_id = self.target_user_id
        if not user_id:
            with self._lock:
                self._profile = None
                self._reset_event = None
                self._error = None
                self._loading = False
            return

        with self._lock:
            self._loading = True
            self._error = None
            self._state = self._state.with_status(loading=True, error=None)
            self._notify(self._state)

        error: Optional[Exception] = None
        try:
            self._apply(user_id, profile=self.profile_repo.get_by_id(user_id))
            self._apply(user_id, reset_event=self.reset_event_repo.get_most_recent(user_id))
        except DataFetchError as exc:
            error = exc
            logger.warning(
                "Streak data fetch failed",
                extra={"user_id": user_id, "error": str(exc)},
            )
        finally:
            with self._lock:
                if user_id == self.target_user_id:
                    self._error = error
                    self._loading = False

    def _apply(self, user_id: str, **fields) -> None:
        with self._lock:
            # A target switch mid-fetch makes these rows stale.
            if user_id != self.target_user_id:
                return
            if "profile" in fields:
                self._profile = fields["profile"]
            if "reset_event" in fields:
                self._reset_event = fields["reset_event"]

    def _sync_timer(self, tz_name: Optional[str]) -> None:
        if not self._scheduling or tz_name is None:
            return
        if tz_name == self._armed_timezone and self.scheduler.timezone == tz_name:
            return
        previous = self._armed_timezone
        self.scheduler.disarm()
        self.scheduler.arm(tz_name, self._on_midnight)
        self._armed_timezone = tz_name
        if previous is not None:
            logger.info(
                "Timezone changed, midnight refresh re-armed",
                extra={"from": previous, "to": tz_name},
            )

    def _on_midnight(self) -> None:
        self.recompute(RecomputeTrigger.MIDNIGHT)

    def _notify(self, state: StreakState) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(state)
        except Exception:
            logger.exception("Streak change listener failed")


__all__ = ["DaysSoberController", "RecomputeTrigger"]
