from routine_tracker.repositories.routine_repository import RoutineRepository
from routine_tracker.repositories.checkin_repository import CheckinRepository
from routine_tracker.repositories.streak_repository import StreakRepository
from routine_tracker.repositories.event_repository import EventRepository

__all__ = [
    "RoutineRepository",
    "CheckinRepository",
    "StreakRepository",
    "EventRepository",
]
