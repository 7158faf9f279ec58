"""Pytest configuration and shared fixtures for SoberDay tests.

Provides an isolated SQLite database per test, data factories, and fakes for
the clock and the APScheduler backend so midnight firings can be driven by
hand.
"""

from __future__ import annotations

import logging
import tempfile
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import pytest
from apscheduler.jobstores.base import JobLookupError
from sqlmodel import Session, SQLModel, create_engine

# Import all models to ensure they're registered with SQLModel metadata
from soberday.models import ResetEvent, SobrietyProfile
from soberday.services import timezones


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine with all tables created
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Database session for arranging test data directly."""
    session = Session(db_engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching what the repositories expect."""

    def factory():
        return Session(db_engine, expire_on_commit=False)

    return factory


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def profile_factory(db_session):
    """Factory for persisted sobriety profiles."""

    def _create_profile(
        user_id: str = "user-123",
        sobriety_date: Optional[date] = date(2024, 1, 1),
        tz: Optional[str] = "America/New_York",
    ) -> SobrietyProfile:
        profile = SobrietyProfile(id=user_id, sobriety_date=sobriety_date, timezone=tz)
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile

    return _create_profile


@pytest.fixture
def reset_event_factory(db_session):
    """Factory for persisted reset events."""

    def _create_event(
        user_id: str = "user-123",
        occurred_on: date = date(2024, 3, 1),
        restart_on: Optional[date] = None,
        notes: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> ResetEvent:
        event = ResetEvent(
            user_id=user_id,
            occurred_on=occurred_on,
            restart_on=restart_on or occurred_on + timedelta(days=1),
            notes=notes,
        )
        if created_at is not None:
            event.created_at = created_at
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _create_event


# =============================================================================
# Clock and scheduler fakes
# =============================================================================


class FakeClock:
    """Settable clock returning aware UTC datetimes."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value

    def advance(self, **kwargs: Any) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeJob:
    def __init__(self, func: Callable, args: tuple, run_date: datetime, job_id: str):
        self.func = func
        self.args = args
        self.run_date = run_date
        self.id = job_id

    def run(self) -> None:
        self.func(*self.args)


class FakeBackend:
    """Stands in for an APScheduler scheduler; jobs only run via ``fire``."""

    running = True

    def __init__(self) -> None:
        self.jobs: dict[str, FakeJob] = {}
        self.added: list[FakeJob] = []
        self.removed: list[str] = []

    def add_job(self, func, trigger=None, args=(), id=None, **kwargs) -> FakeJob:
        job = FakeJob(func, tuple(args), trigger.run_date, id)
        self.jobs[id] = job
        self.added.append(job)
        return job

    def remove_job(self, job_id: str, jobstore: Optional[str] = None) -> None:
        if job_id not in self.jobs:
            raise JobLookupError(job_id)
        del self.jobs[job_id]
        self.removed.append(job_id)

    @property
    def only_job(self) -> FakeJob:
        assert len(self.jobs) == 1, f"expected one pending job, got {len(self.jobs)}"
        return next(iter(self.jobs.values()))

    def fire(self, clock: Optional[FakeClock] = None) -> FakeJob:
        """Run the pending job the way a one-shot DateTrigger does."""
        job = self.only_job
        del self.jobs[job.id]
        if clock is not None:
            clock.set(job.run_date)
        job.run()
        return job


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def fake_clock():
    return FakeClock(utc(2024, 4, 10, 12, 0))


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture(autouse=True)
def _reset_device_timezone(monkeypatch):
    """Pin the device zone to UTC and clear the cached detection."""
    monkeypatch.setenv("SOBERDAY_DEVICE_TIMEZONE", "UTC")
    timezones.device_timezone.cache_clear()
    yield
    timezones.device_timezone.cache_clear()


@pytest.fixture(autouse=True)
def _isolate_app_logging(tmp_path, monkeypatch):
    """Keep data files in tmp_path and drop handlers added by setup_logging."""
    monkeypatch.setenv("SOBERDAY_DATA_DIR", str(tmp_path))
    yield
    package_logger = logging.getLogger("soberday")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
