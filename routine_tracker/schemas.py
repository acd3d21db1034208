from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import datetime, date
from typing import Any, Dict, List, Optional, Literal

from routine_tracker.constants import (
    RECURRENCE_DAILY, RECURRENCE_WEEKLY, TIME_OF_DAY_PATTERN, WEEKDAY_MIN, WEEKDAY_MAX
)


# Routine schemas
class RoutineBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    frequency: Literal["daily", "weekly"] = RECURRENCE_DAILY
    weekdays: List[int] = Field(default_factory=list)  # 1=Mon ... 7=Sun, weekly only
    time_of_day: Optional[str] = Field(None, pattern=TIME_OF_DAY_PATTERN)
    reminders: bool = True
    meta: Dict[str, Any] = Field(default_factory=dict)


class RoutineCreate(RoutineBase):
    pass


class RoutineUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    frequency: Optional[Literal["daily", "weekly"]] = None
    weekdays: Optional[List[int]] = None
    time_of_day: Optional[str] = Field(None, pattern=TIME_OF_DAY_PATTERN)
    reminders: Optional[bool] = None
    meta: Optional[Dict[str, Any]] = None


class RoutineResponse(RoutineBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime


# Check-in schemas
class CheckinCreate(BaseModel):
    routine_id: str
    checkin_date: date
    status: Literal["done", "skipped"]
    note: Optional[str] = Field(None, max_length=1000)
    meta: Dict[str, Any] = Field(default_factory=dict)


class MarkDone(BaseModel):
    note: Optional[str] = Field(None, max_length=1000)
    meta: Optional[Dict[str, Any]] = None


class CheckinResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    routine_id: str
    user_id: str
    checkin_date: date
    status: str
    note: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


# Streak schemas
class StreakState(BaseModel):
    """Snapshot of one routine's streak counters"""
    model_config = ConfigDict(frozen=True)

    current_streak: int = Field(..., ge=0)
    best_streak: int = Field(..., ge=0)
    last_checkin_date: Optional[date] = None

    @model_validator(mode="after")
    def best_covers_current(self):
        if self.best_streak < self.current_streak:
            raise ValueError("best_streak must be >= current_streak")
        return self


class StreakResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    routine_id: str
    user_id: str
    current_streak: int
    best_streak: int
    last_checkin_date: Optional[date] = None
    updated_at: Optional[datetime] = None


# Generator schemas
class GenerationResult(BaseModel):
    """Summary of one Checkin Generator run"""
    target_date: date
    total_routines: int = 0
    due: int = 0
    created: int = 0
    skipped_existing: int = 0
    failed: int = 0
    timed_out: bool = False
    failures: Dict[str, str] = Field(default_factory=dict)  # routine_id -> error

    @property
    def completed(self) -> bool:
        return not self.timed_out


class GeneratorRunRequest(BaseModel):
    target_date: Optional[date] = None


class SchedulerJobResponse(BaseModel):
    id: str
    name: str
    trigger: str
    next_run: Optional[datetime] = None


class SchedulerStatusResponse(BaseModel):
    enabled: bool
    running: bool
    timezone: str
    fire_time: str
    last_result: Optional[GenerationResult] = None
    jobs: List[SchedulerJobResponse] = Field(default_factory=list)


def validate_weekdays(frequency: str, weekdays: List[int]) -> Optional[str]:
    """Return an error message if the weekday set does not fit the frequency"""
    if frequency == RECURRENCE_WEEKLY:
        if not weekdays:
            return "Weekly routines must specify at least one weekday"
        if any(day < WEEKDAY_MIN or day > WEEKDAY_MAX for day in weekdays):
            return f"Weekdays must be between {WEEKDAY_MIN} and {WEEKDAY_MAX}"
        if len(set(weekdays)) != len(weekdays):
            return "Weekdays must not repeat"
    elif frequency == RECURRENCE_DAILY and weekdays:
        return "Daily routines should not specify weekdays"
    return None
