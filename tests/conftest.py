"""Pytest configuration and shared fixtures for CoreStreak tests.

This module provides database fixtures, test data factories, and helper utilities
for testing the analytics engine, repositories, and services without touching the
real application database.
"""

from __future__ import annotations

from datetime import date

import pytest
from sqlmodel import Session

from corestreak.config import TestConfig
from corestreak.infra.database import create_db_engine, create_session_factory, init_database
from corestreak.models import Habit, HabitCompletion, User


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Point every config instance at a throwaway data directory."""

    data_dir = tmp_path / "data"
    monkeypatch.setenv("CORESTREAK_DATA_DIR", str(data_dir))
    for name in ("CORESTREAK_DATABASE_URL", "CORESTREAK_LOOKBACK_DAYS", "CORESTREAK_HISTORY_YEARS"):
        monkeypatch.delenv(name, raising=False)
    return data_dir


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine(tmp_path, monkeypatch):
    """Create an isolated file-backed SQLite database for each test.

    Yields:
        Engine: SQLModel engine with all tables created
    """
    monkeypatch.setenv("CORESTREAK_DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    engine = create_db_engine(TestConfig())
    init_database(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a database session for a single test."""
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
    """Session factory matching the one repositories receive in production.

    A default user is bootstrapped and exposed as ``factory.user``.
    """

    factory = create_session_factory(db_engine)

    with factory() as session:
        user_row = User(username="tester", password_hash="dummy-hash")
        session.add(user_row)
        session.commit()
        session.refresh(user_row)
        session.expunge(user_row)
    factory.user = user_row  # type: ignore[attr-defined]

    return factory


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user(session_factory) -> User:
    """The default user that owns test data."""

    return session_factory.user


@pytest.fixture
def other_user(db_session) -> User:
    """A second user, for ownership isolation checks."""

    other = User(username="someone-else", password_hash="dummy-hash")
    db_session.add(other)
    db_session.commit()
    db_session.refresh(other)
    return other


@pytest.fixture
def habit_factory(db_session, user):
    """Factory for creating persisted habits.

    Returns:
        Callable: Function that creates and persists Habit instances
    """

    def _create_habit(
        name: str = "Test Habit",
        is_core: bool = False,
        owner: User | None = None,
    ) -> Habit:
        owner = owner or user
        habit = Habit(user_id=owner.id, name=name, is_core=is_core)
        db_session.add(habit)
        db_session.commit()
        db_session.refresh(habit)
        return habit

    return _create_habit


@pytest.fixture
def completion_factory(db_session, user):
    """Factory for persisting completion rows directly."""

    def _complete(habit: Habit, on: date, owner: User | None = None) -> HabitCompletion:
        owner = owner or user
        row = HabitCompletion(user_id=owner.id, habit_id=habit.id, completed_on=on)
        db_session.add(row)
        db_session.commit()
        return row

    return _complete

