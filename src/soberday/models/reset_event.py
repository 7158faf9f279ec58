"""Logged relapse records."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .profile import SobrietyProfile


class ResetEvent(SQLModel, table=True):
    """A relapse on ``occurred_on`` after which recovery resumed on ``restart_on``.

    Rows are append-only; the streak engine only ever reads the latest one.
    """

    __tablename__: ClassVar[str] = "reset_event"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="profile.id", nullable=False, index=True, max_length=64)
    occurred_on: date = Field(nullable=False, index=True)
    restart_on: date = Field(nullable=False)
    notes: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    profile: "SobrietyProfile" = Relationship(
        back_populates="reset_events",
        sa_relationship=relationship("SobrietyProfile", back_populates="reset_events"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "occurred_on": self.occurred_on.isoformat(),
            "restart_on": self.restart_on.isoformat(),
            "notes": self.notes,
        }
