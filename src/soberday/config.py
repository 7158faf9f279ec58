"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    parsed = int(value.strip())
    if parsed <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return parsed


def _env_str(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "SoberDay"
    DB_FILENAME = "soberday.db"
    DEFAULT_MIDNIGHT_FLOOR_MS = 1000

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("SOBERDAY_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("SOBERDAY_DATABASE_URL", self._build_sqlite_url())
        # Overrides host detection; see services.timezones.device_timezone.
        self.DEVICE_TIMEZONE = _env_str("SOBERDAY_DEVICE_TIMEZONE")
        # The "currently authenticated" user for the CLI and context.
        self.USER_ID = _env_str("SOBERDAY_USER_ID")
        self.MIDNIGHT_FLOOR_MS = _env_int(
            "SOBERDAY_MIDNIGHT_FLOOR_MS", self.DEFAULT_MIDNIGHT_FLOOR_MS
        )

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("SOBERDAY_DATA_DIR", "instance")
        base_path = Path(data_root).expanduser()
        try:
            path = base_path.resolve()
            path.mkdir(parents=True, exist_ok=True)
            return path
        except PermissionError:
            # Protected install locations fall back to user-local storage.
            fallback_path = Path.home() / ".local" / "share" / self.APP_NAME.lower()
            fallback_path.mkdir(parents=True, exist_ok=True)
            return fallback_path.resolve()

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside DATA_DIR."""

        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if not self.DATABASE_URL.startswith("sqlite"):
            return {}
        # The midnight job runs on an APScheduler worker thread.
        return {"connect_args": {"check_same_thread": False}}
