"""Effective timezone resolution and validation.

Day counts roll over at local midnight in the user's zone, so every
calculation starts by deciding which IANA zone applies: the profile's, or the
host default when the profile has none.
"""

from __future__ import annotations

import os
from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..logging_config import get_logger

logger = get_logger("timezones")

FALLBACK_TIMEZONE = "UTC"
DEVICE_TIMEZONE_ENV = "SOBERDAY_DEVICE_TIMEZONE"
_LOCALTIME = Path("/etc/localtime")

TimezoneLike = Union[str, tzinfo]


def is_valid_timezone(name: Optional[str]) -> bool:
    """Return True when ``name`` is a loadable IANA zone key."""

    if not name or not isinstance(name, str):
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        # Region directories like "America" and overlong keys raise OSError.
        return False
    return True


def _zone_from_localtime(path: Path = _LOCALTIME) -> Optional[str]:
    """Read the zone key from the ``/etc/localtime`` symlink target."""

    if not path.is_symlink():
        return None
    target = os.path.realpath(path)
    marker = "zoneinfo" + os.sep
    if marker not in target:
        return None
    return target.split(marker, 1)[1]


def detect_device_timezone() -> str:
    """Work out the host's IANA zone without caching."""

    candidates = (
        os.getenv(DEVICE_TIMEZONE_ENV),
        (os.getenv("TZ") or "").lstrip(":") or None,
        _zone_from_localtime(_LOCALTIME),
    )
    for candidate in candidates:
        if candidate and is_valid_timezone(candidate.strip()):
            return candidate.strip()
    return FALLBACK_TIMEZONE


@lru_cache(maxsize=1)
def device_timezone() -> str:
    """Host default zone, detected once per process."""

    return detect_device_timezone()


def resolve_timezone(profile_timezone: Optional[str], default: Optional[str] = None) -> str:
    """Profile zone when set, otherwise ``default`` or the device zone.

    No validation happens here; see :func:`load_zone`.
    """

    if profile_timezone is not None and profile_timezone.strip():
        return profile_timezone.strip()
    return default or device_timezone()


def load_zone(name: str, fallback: Optional[str] = None) -> Tuple[str, ZoneInfo]:
    """Load ``name`` or fall back to the device zone, then UTC.

    Returns the key actually used together with the loaded zone so callers
    can report which zone a count was computed in.
    """

    for candidate in (name, fallback or device_timezone()):
        if is_valid_timezone(candidate):
            return candidate, ZoneInfo(candidate)
        logger.warning(
            "Unrecognized timezone, falling back",
            extra={"timezone": candidate},
        )
    return FALLBACK_TIMEZONE, ZoneInfo(FALLBACK_TIMEZONE)


def as_zone(tz: Optional[TimezoneLike]) -> tzinfo:
    """Coerce a zone key or tzinfo into a tzinfo; None means the device zone."""

    if tz is None:
        return ZoneInfo(device_timezone())
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


__all__ = [
    "FALLBACK_TIMEZONE",
    "TimezoneLike",
    "as_zone",
    "detect_device_timezone",
    "device_timezone",
    "is_valid_timezone",
    "load_zone",
    "resolve_timezone",
]
