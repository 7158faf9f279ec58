"""Unit tests for repository implementations."""

from datetime import date, datetime, timezone

import pytest
from sqlmodel import create_engine

from soberday.config import BaseConfig
from soberday.errors import DataFetchError
from soberday.infra.database import bootstrap_database, create_session_factory
from soberday.infra.repositories import (
    SQLModelProfileRepository,
    SQLModelResetEventRepository,
)


@pytest.fixture
def profile_repo(session_factory):
    return SQLModelProfileRepository(session_factory)


@pytest.fixture
def reset_repo(session_factory):
    return SQLModelResetEventRepository(session_factory)


class TestProfileRepository:
    def test_upsert_creates_profile(self, profile_repo):
        profile = profile_repo.upsert(
            "user-123",
            sobriety_date=date(2024, 1, 1),
            timezone="America/New_York",
            display_name="Sam",
        )

        assert profile.id == "user-123"
        assert profile.sobriety_date == date(2024, 1, 1)
        assert profile.timezone == "America/New_York"
        assert profile.display_name == "Sam"

    def test_upsert_updates_in_place(self, profile_repo):
        profile_repo.upsert("user-123", sobriety_date=date(2024, 1, 1), timezone=None, display_name="Sam")
        profile_repo.upsert("user-123", sobriety_date=date(2024, 2, 1), timezone="Europe/Berlin")

        profile = profile_repo.get_by_id("user-123")
        assert profile.sobriety_date == date(2024, 2, 1)
        assert profile.timezone == "Europe/Berlin"
        # Omitted display name is preserved.
        assert profile.display_name == "Sam"

    def test_find_missing_returns_none(self, profile_repo):
        assert profile_repo.find("ghost") is None

    def test_get_missing_raises(self, profile_repo):
        with pytest.raises(DataFetchError) as excinfo:
            profile_repo.get_by_id("ghost")
        assert excinfo.value.user_id == "ghost"

    def test_get_existing(self, profile_repo, profile_factory):
        profile_factory(user_id="user-123", sobriety_date=None, tz=None)

        profile = profile_repo.get_by_id("user-123")
        assert profile.sobriety_date is None
        assert profile.timezone is None


class TestResetEventRepository:
    def test_no_events(self, reset_repo, profile_factory):
        profile_factory()
        assert reset_repo.get_most_recent("user-123") is None
        assert reset_repo.list_for_user("user-123") == []

    def test_most_recent_by_occurrence(self, reset_repo, profile_factory, reset_event_factory):
        profile_factory()
        reset_event_factory(occurred_on=date(2024, 3, 1))
        reset_event_factory(occurred_on=date(2024, 2, 1))

        event = reset_repo.get_most_recent("user-123")
        assert event.occurred_on == date(2024, 3, 1)
        assert event.restart_on == date(2024, 3, 2)

    def test_same_day_prefers_later_restart(self, reset_repo, profile_factory, reset_event_factory):
        profile_factory()
        reset_event_factory(occurred_on=date(2024, 3, 1), restart_on=date(2024, 3, 5))
        reset_event_factory(occurred_on=date(2024, 3, 1), restart_on=date(2024, 3, 2))

        assert reset_repo.get_most_recent("user-123").restart_on == date(2024, 3, 5)

    def test_full_tie_prefers_latest_created(self, reset_repo, profile_factory, reset_event_factory):
        profile_factory()
        later = reset_event_factory(
            notes="second", created_at=datetime(2024, 3, 1, 9, tzinfo=timezone.utc)
        )
        reset_event_factory(notes="first", created_at=datetime(2024, 3, 1, 8, tzinfo=timezone.utc))

        assert reset_repo.get_most_recent("user-123").id == later.id

    def test_scoped_to_user(self, reset_repo, profile_factory, reset_event_factory):
        profile_factory(user_id="user-123")
        profile_factory(user_id="user-456")
        reset_event_factory(user_id="user-456", occurred_on=date(2024, 4, 1))

        assert reset_repo.get_most_recent("user-123") is None
        assert reset_repo.get_most_recent("user-456").occurred_on == date(2024, 4, 1)

    def test_list_most_recent_first(self, reset_repo, profile_factory, reset_event_factory):
        profile_factory()
        for day in (5, 20, 12):
            reset_event_factory(occurred_on=date(2024, 2, day))

        events = reset_repo.list_for_user("user-123")
        assert [e.occurred_on.day for e in events] == [20, 12, 5]

    def test_create(self, reset_repo, profile_factory):
        profile_factory()
        event = reset_repo.create(
            "user-123",
            occurred_on=date(2024, 4, 1),
            restart_on=date(2024, 4, 2),
            notes="rough week",
        )

        assert event.id is not None
        assert event.to_dict() == {
            "id": event.id,
            "user_id": "user-123",
            "occurred_on": "2024-04-01",
            "restart_on": "2024-04-02",
            "notes": "rough week",
        }
        assert reset_repo.get_most_recent("user-123").id == event.id

    def test_create_same_day_restart(self, reset_repo, profile_factory):
        profile_factory()
        event = reset_repo.create("user-123", occurred_on=date(2024, 4, 1), restart_on=date(2024, 4, 1))
        assert event.restart_on == event.occurred_on

    def test_create_rejects_restart_before_occurrence(self, reset_repo, profile_factory):
        profile_factory()
        with pytest.raises(ValueError):
            reset_repo.create("user-123", occurred_on=date(2024, 4, 2), restart_on=date(2024, 4, 1))
        assert reset_repo.list_for_user("user-123") == []


class TestStoreFailures:
    """Query errors surface as DataFetchError."""

    @pytest.fixture
    def broken_factory(self, tmp_path):
        # No tables created.
        engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
        yield create_session_factory(engine)
        engine.dispose()

    def test_profile_query_failure(self, broken_factory):
        with pytest.raises(DataFetchError):
            SQLModelProfileRepository(broken_factory).get_by_id("user-123")

    def test_reset_event_query_failure(self, broken_factory):
        repo = SQLModelResetEventRepository(broken_factory)
        with pytest.raises(DataFetchError):
            repo.get_most_recent("user-123")
        with pytest.raises(DataFetchError):
            repo.list_for_user("user-123")


def test_bootstrap_database(tmp_path, monkeypatch):
    monkeypatch.setenv("SOBERDAY_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("SOBERDAY_DATABASE_URL", raising=False)

    engine, factory = bootstrap_database(BaseConfig())
    try:
        repo = SQLModelProfileRepository(factory)
        repo.upsert("user-123", sobriety_date=date(2024, 1, 1), timezone="UTC")

        assert repo.get_by_id("user-123").timezone == "UTC"
        assert (tmp_path / "soberday.db").exists()
    finally:
        engine.dispose()
