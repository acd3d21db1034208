import uuid
from datetime import datetime

from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, Integer, String, UniqueConstraint, Index
)

from routine_tracker.database import Base
from routine_tracker.constants import CHECKIN_STATUS_SKIPPED, RECURRENCE_DAILY


def _new_id() -> str:
    return str(uuid.uuid4())


class Routine(Base):
    __tablename__ = "routines"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False, default="")
    frequency = Column(String, nullable=False, default=RECURRENCE_DAILY)  # daily, weekly
    weekdays = Column(JSON, nullable=False, default=list)  # weekly only: [1,3,5] (Mon,Wed,Fri)
    time_of_day = Column(String, nullable=True)  # "07:00" - reminders only, never gates generation
    reminders = Column(Boolean, default=True)
    meta = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class Checkin(Base):
    __tablename__ = "checkins"
    __table_args__ = (
        # At most one check-in per routine per day
        UniqueConstraint("routine_id", "checkin_date", name="uq_checkins_routine_date"),
        Index("ix_checkins_user_date", "user_id", "checkin_date"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    routine_id = Column(String(36), nullable=False, index=True)  # no FK: history outlives routines
    user_id = Column(String, nullable=False)  # copied from the routine at creation time
    checkin_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default=CHECKIN_STATUS_SKIPPED)  # done, skipped
    note = Column(String, nullable=True)
    meta = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class Streak(Base):
    __tablename__ = "streaks"

    routine_id = Column(String(36), primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    current_streak = Column(Integer, nullable=False, default=0)
    best_streak = Column(Integer, nullable=False, default=0)
    last_checkin_date = Column(Date, nullable=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    timestamp = Column(DateTime, default=datetime.now, index=True)
