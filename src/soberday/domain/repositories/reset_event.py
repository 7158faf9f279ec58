"""Reset event repository protocol."""

from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ...models.reset_event import ResetEvent


class ResetEventRepository(Protocol):
    """Append-only store of relapse records."""

    def get_most_recent(self, user_id: str) -> Optional[ResetEvent]:
        """Latest event by ``occurred_on``; raise ``DataFetchError`` on failure."""
        ...

    def list_for_user(self, user_id: str) -> list[ResetEvent]:
        """All events, most recent first."""
        ...

    def create(
        self,
        user_id: str,
        *,
        occurred_on: date,
        restart_on: date,
        notes: Optional[str] = None,
    ) -> ResetEvent:
        """Record a new reset event."""
        ...
