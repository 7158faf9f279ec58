"""Concrete repository implementations using SQLModel."""

from .profile import SQLModelProfileRepository
from .reset_event import SQLModelResetEventRepository

__all__ = [
    "SQLModelProfileRepository",
    "SQLModelResetEventRepository",
]
