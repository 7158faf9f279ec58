"""SQLModel implementation of the profile repository."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ...errors import DataFetchError
from ...logging_config import get_logger
from ...models.profile import SobrietyProfile

logger = get_logger("infra.profile")
_UTC = timezone.utc


class SQLModelProfileRepository:
    """SQLModel-based profile repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def find(self, user_id: str) -> Optional[SobrietyProfile]:
        """Return the profile if it exists."""
        try:
            with self.session_factory() as session:
                obj = session.exec(
                    select(SobrietyProfile).where(SobrietyProfile.id == user_id)
                ).first()
                if obj:
                    session.expunge(obj)
                return obj
        except SQLAlchemyError as exc:
            logger.error(
                "Profile query failed", exc_info=True, extra={"user_id": user_id}
            )
            raise DataFetchError(f"Could not load profile {user_id}: {exc}", user_id=user_id) from exc

    def get_by_id(self, user_id: str) -> SobrietyProfile:
        """Return the profile; a missing row is a fetch error."""
        profile = self.find(user_id)
        if profile is None:
            raise DataFetchError(f"Profile {user_id} not found", user_id=user_id)
        return profile

    def upsert(
        self,
        user_id: str,
        *,
        sobriety_date: Optional[date],
        timezone: Optional[str],
        display_name: Optional[str] = None,
    ) -> SobrietyProfile:
        """Create or update a profile."""
        with self.session_factory() as session:
            profile = session.exec(
                select(SobrietyProfile).where(SobrietyProfile.id == user_id)
            ).first()
            if profile is None:
                profile = SobrietyProfile(id=user_id)
            profile.sobriety_date = sobriety_date
            profile.timezone = timezone
            if display_name is not None:
                profile.display_name = display_name
            profile.updated_at = datetime.now(tz=_UTC)
            session.add(profile)
            session.commit()
            session.refresh(profile)
            session.expunge(profile)
            return profile

__all__ = ["SQLModelProfileRepository"]
