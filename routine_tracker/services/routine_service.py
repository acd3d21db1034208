"""
Routine management service.
Rejects malformed recurrence rules before they reach the store, so the
generator can rely on daily => no weekdays and weekly => at least one weekday.
"""
from typing import List
from sqlalchemy.orm import Session

from routine_tracker.constants import RECURRENCE_DAILY
from routine_tracker.exceptions import RoutineNotFoundException, ValidationException
from routine_tracker.models import Routine
from routine_tracker.repositories.routine_repository import RoutineRepository
from routine_tracker.schemas import RoutineCreate, RoutineUpdate, validate_weekdays


class RoutineService:
    """Service for routine management"""

    def __init__(self, db: Session):
        self.db = db
        self.routine_repo = RoutineRepository()

    def get_routines(self, user_id: str) -> List[Routine]:
        return self.routine_repo.get_all_for_user(self.db, user_id)

    def get_routine(self, routine_id: str, user_id: str) -> Routine:
        routine = self.routine_repo.get_for_user(self.db, routine_id, user_id)
        if not routine:
            raise RoutineNotFoundException(routine_id)
        return routine

    def create_routine(self, data: RoutineCreate, user_id: str) -> Routine:
        """Create a routine after checking its recurrence rule"""
        error = validate_weekdays(data.frequency, data.weekdays)
        if error:
            raise ValidationException("weekdays", error)

        routine = Routine(
            user_id=user_id,
            title=data.title,
            frequency=data.frequency,
            weekdays=sorted(data.weekdays),
            time_of_day=data.time_of_day,
            reminders=data.reminders,
            meta=dict(data.meta)
        )
        return self.routine_repo.create(self.db, routine)

    def update_routine(self, routine_id: str, data: RoutineUpdate, user_id: str) -> Routine:
        """Apply a partial update; the resulting rule must still be valid"""
        routine = self.get_routine(routine_id, user_id)
        update_data = data.model_dump(exclude_unset=True)

        frequency = update_data.get("frequency") or routine.frequency
        if "weekdays" in update_data and update_data["weekdays"] is not None:
            weekdays = update_data["weekdays"]
        elif frequency == RECURRENCE_DAILY:
            weekdays = []
        else:
            weekdays = routine.weekdays or []

        error = validate_weekdays(frequency, weekdays)
        if error:
            raise ValidationException("weekdays", error)

        for key in ("title", "time_of_day", "reminders", "meta"):
            if key in update_data and (update_data[key] is not None or key == "time_of_day"):
                setattr(routine, key, update_data[key])
        routine.frequency = frequency
        routine.weekdays = sorted(weekdays)

        return self.routine_repo.update(self.db, routine)

    def delete_routine(self, routine_id: str, user_id: str) -> None:
        """
        Delete a routine. Its check-ins and streak are kept; the next
        generator run simply no longer sees the routine.
        """
        routine = self.get_routine(routine_id, user_id)
        self.routine_repo.delete(self.db, routine)
