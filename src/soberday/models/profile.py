"""Sobriety profile owned by the external profile store."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .reset_event import ResetEvent


class SobrietyProfile(SQLModel, table=True):
    """A user's recovery profile: journey start date and home timezone."""

    __tablename__: ClassVar[str] = "profile"

    id: str = Field(primary_key=True, max_length=64)
    display_name: Optional[str] = Field(default=None, max_length=80)
    # Calendar date only; interpreted as local midnight in ``timezone``.
    sobriety_date: Optional[date] = Field(default=None)
    timezone: Optional[str] = Field(default=None, max_length=64)
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    reset_events: list["ResetEvent"] = Relationship(
        back_populates="profile",
        sa_relationship=relationship("ResetEvent", back_populates="profile"),
    )
