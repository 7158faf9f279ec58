"""Repository protocol definitions for domain layer."""

from .profile import ProfileRepository
from .reset_event import ResetEventRepository

__all__ = [
    "ProfileRepository",
    "ResetEventRepository",
]
