"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from sqlmodel import Session

from .config import BaseConfig
from .infra.database import create_db_engine, create_session_factory, init_database
from .infra.repositories import SQLModelProfileRepository, SQLModelResetEventRepository
from .scheduler import MidnightScheduler
from .services.controller import DaysSoberController
from .services.streaks import StreakState


@dataclass
class AppContext:
    """Configuration, repositories and the signed-in user."""

    config: BaseConfig
    session_factory: Callable[[], Session]
    profile_repo: SQLModelProfileRepository
    reset_event_repo: SQLModelResetEventRepository
    current_user_id: Optional[str] = None

    def require_user_id(self) -> str:
        """Return the current user id or raise if not set."""

        if not self.current_user_id:
            raise RuntimeError("No current user; set SOBERDAY_USER_ID or pass --user")
        return self.current_user_id

    def create_controller(
        self,
        *,
        target_user_id: Optional[str] = None,
        on_change: Optional[Callable[[StreakState], None]] = None,
        scheduler: Optional[MidnightScheduler] = None,
    ) -> DaysSoberController:
        """Build a controller wired to this context's stores and settings."""

        return DaysSoberController(
            self.profile_repo,
            self.reset_event_repo,
            current_user_id=self.current_user_id,
            target_user_id=target_user_id,
            scheduler=scheduler,
            device_timezone=self.config.DEVICE_TIMEZONE,
            on_change=on_change,
            midnight_floor_ms=self.config.MIDNIGHT_FLOOR_MS,
        )


def create_app_context(config: Optional[BaseConfig] = None) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()

    engine = create_db_engine(config)
    init_database(engine)
    session_factory = create_session_factory(engine)

    return AppContext(
        config=config,
        session_factory=session_factory,
        profile_repo=SQLModelProfileRepository(session_factory),
        reset_event_repo=SQLModelResetEventRepository(session_factory),
        current_user_id=config.USER_ID,
    )
