"""
Date calculation service.
Handles day truncation, weekday indexes and "tomorrow" in the scheduler timezone.
All comparisons in the tracker are done on whole calendar days.
"""
from datetime import datetime, timedelta, date, tzinfo
from typing import Optional, Union

from routine_tracker.constants import RECURRENCE_DAILY, RECURRENCE_WEEKLY


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def to_day(value: Union[date, datetime], tz: Optional[tzinfo] = None) -> date:
        """
        Truncate a date or datetime to its calendar day.

        Args:
            value: Date or datetime to truncate
            tz: If given and value is timezone-aware, convert to this zone first

        Returns:
            Calendar day
        """
        if isinstance(value, datetime):
            if tz is not None and value.tzinfo is not None:
                value = value.astimezone(tz)
            return value.date()
        return value

    @staticmethod
    def weekday_index(day: date) -> int:
        """Weekday index with Monday = 1 ... Sunday = 7"""
        return day.isoweekday()

    @staticmethod
    def days_between(earlier: Union[date, datetime], later: Union[date, datetime]) -> int:
        """
        Whole-day difference later - earlier (negative if later precedes earlier).
        """
        return (DateService.to_day(later) - DateService.to_day(earlier)).days

    @staticmethod
    def is_due(frequency: str, weekdays, day: date) -> bool:
        """
        Whether a recurrence rule selects the given day.

        Daily rules select every day; weekly rules select days whose weekday
        index is in the weekday set. Unknown frequencies select nothing.
        """
        if frequency == RECURRENCE_DAILY:
            return True
        if frequency == RECURRENCE_WEEKLY:
            return DateService.weekday_index(day) in (weekdays or [])
        return False

    @staticmethod
    def today_in(tz: tzinfo, now: Optional[datetime] = None) -> date:
        """Current calendar day in the given timezone"""
        if now is None:
            now = datetime.now(tz)
        return DateService.to_day(now, tz)

    @staticmethod
    def tomorrow_in(tz: tzinfo, now: Optional[datetime] = None) -> date:
        """Next calendar day in the given timezone (the generator's default target)"""
        return DateService.today_in(tz, now) + timedelta(days=1)
