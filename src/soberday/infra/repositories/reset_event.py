"""SQLModel implementation of the reset event repository."""

from __future__ import annotations

from datetime import date
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ...errors import DataFetchError
from ...logging_config import get_logger
from ...models.reset_event import ResetEvent

logger = get_logger("infra.reset_event")

# Most recent first; same-day events resolve to the latest restart.
_RECENCY_ORDER = (
    ResetEvent.occurred_on.desc(),  # type: ignore[attr-defined]
    ResetEvent.restart_on.desc(),  # type: ignore[attr-defined]
    ResetEvent.created_at.desc(),  # type: ignore[attr-defined]
    ResetEvent.id.desc(),  # type: ignore[union-attr]
)


class SQLModelResetEventRepository:
    """SQLModel-based reset event repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_most_recent(self, user_id: str) -> Optional[ResetEvent]:
        """Return the latest reset event for ``user_id`` (limit 1)."""
        try:
            with self.session_factory() as session:
                statement = (
                    select(ResetEvent)
                    .where(ResetEvent.user_id == user_id)
                    .order_by(*_RECENCY_ORDER)
                    .limit(1)
                )
                obj = session.exec(statement).first()
                if obj:
                    session.expunge(obj)
                return obj
        except SQLAlchemyError as exc:
            logger.error(
                "Reset event query failed", exc_info=True, extra={"user_id": user_id}
            )
            raise DataFetchError(
                f"Could not load reset events for {user_id}: {exc}", user_id=user_id
            ) from exc

    def list_for_user(self, user_id: str) -> list[ResetEvent]:
        """All events for ``user_id``, most recent first."""
        try:
            with self.session_factory() as session:
                statement = (
                    select(ResetEvent)
                    .where(ResetEvent.user_id == user_id)
                    .order_by(*_RECENCY_ORDER)
                )
                rows = list(session.exec(statement).all())
                session.expunge_all()
                return rows
        except SQLAlchemyError as exc:
            raise DataFetchError(
                f"Could not list reset events for {user_id}: {exc}", user_id=user_id
            ) from exc

    def create(
        self,
        user_id: str,
        *,
        occurred_on: date,
        restart_on: date,
        notes: Optional[str] = None,
    ) -> ResetEvent:
        """Record a new reset event."""
        if restart_on < occurred_on:
            raise ValueError("restart_on cannot be before occurred_on")
        with self.session_factory() as session:
            event = ResetEvent(
                user_id=user_id,
                occurred_on=occurred_on,
                restart_on=restart_on,
                notes=notes,
            )
            session.add(event)
            session.commit()
            session.refresh(event)
            session.expunge(event)
            logger.info(
                "Reset event recorded",
                extra={"user_id": user_id, "occurred_on": occurred_on.isoformat()},
            )
            return event


__all__ = ["SQLModelResetEventRepository"]
