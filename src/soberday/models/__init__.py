"""SQLModel table exports."""

from .profile import SobrietyProfile
from .reset_event import ResetEvent

__all__ = [
    "ResetEvent",
    "SobrietyProfile",
]
