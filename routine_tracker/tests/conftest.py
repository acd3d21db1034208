"""
Shared fixtures for the routine tracker tests.
Every test gets a fresh in-memory SQLite store.
"""
import pytest
from datetime import date
from typing import List, Optional

from routine_tracker.database import create_db_engine, create_session_factory, init_db
from routine_tracker.models import Checkin, Routine, Streak


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """Session factory over a file database, for tests that need real concurrent connections"""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'routines.db'}")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def monday():
    return date(2025, 11, 10)


def create_routine(
    db,
    user_id: str = "user-1",
    frequency: str = "daily",
    weekdays: Optional[List[int]] = None,
    title: str = "Morning run"
) -> Routine:
    """Helper to insert a routine"""
    routine = Routine(
        user_id=user_id,
        title=title,
        frequency=frequency,
        weekdays=weekdays or [],
        meta={}
    )
    db.add(routine)
    db.commit()
    db.refresh(routine)
    return routine


def create_checkin(db, routine: Routine, checkin_date: date, status: str = "skipped") -> Checkin:
    """Helper to insert a check-in for a routine"""
    checkin = Checkin(
        routine_id=routine.id,
        user_id=routine.user_id,
        checkin_date=checkin_date,
        status=status,
        meta={}
    )
    db.add(checkin)
    db.commit()
    db.refresh(checkin)
    return checkin


def create_streak(db, routine_id: str, current: int, best: int,
                  last: Optional[date], user_id: str = "user-1") -> Streak:
    """Helper to insert a streak row directly"""
    streak = Streak(
        routine_id=routine_id,
        user_id=user_id,
        current_streak=current,
        best_streak=best,
        last_checkin_date=last
    )
    db.add(streak)
    db.commit()
    db.refresh(streak)
    return streak
