"""Profile repository protocol."""

from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ...models.profile import SobrietyProfile


class ProfileRepository(Protocol):
    """Read access to sobriety profiles, plus the edits onboarding performs."""

    def get_by_id(self, user_id: str) -> SobrietyProfile:
        """Return the profile or raise ``DataFetchError``."""
        ...

    def find(self, user_id: str) -> Optional[SobrietyProfile]:
        """Return the profile if it exists."""
        ...

    def upsert(
        self,
        user_id: str,
        *,
        sobriety_date: Optional[date],
        timezone: Optional[str],
        display_name: Optional[str] = None,
    ) -> SobrietyProfile:
        """Create or update a profile."""
        ...
