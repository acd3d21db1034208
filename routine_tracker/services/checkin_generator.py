"""
Check-in generator.

Expands every routine's recurrence rule against one target day and makes sure
each due routine has a check-in for that day, creating a "skipped" placeholder
where none exists. Running it again for the same day, or at the same time as
another run or a user's own check-in, is safe: the store rejects the second
insert for (routine, day) and the generator counts that as already satisfied.
Existing check-ins are never overwritten.

The generator knows nothing about timers; the scheduler and the manual
trigger both just call run(target_date).
"""
import logging
import time
from datetime import date, datetime
from typing import Callable, List, NamedTuple, Optional, Union
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from routine_tracker.constants import (
    CHECKIN_STATUS_SKIPPED,
    DEFAULT_GENERATOR_TIMEOUT_SECONDS,
    DEFAULT_ROUTINE_RETRIES,
    EVENT_CHECKIN_PLANNED,
)
from routine_tracker.exceptions import DatabaseException, DuplicateCheckinException
from routine_tracker.repositories.checkin_repository import CheckinRepository
from routine_tracker.repositories.routine_repository import RoutineRepository
from routine_tracker.schemas import GenerationResult
from routine_tracker.services.date_service import DateService
from routine_tracker.services.event_service import EventService

logger = logging.getLogger("routine_tracker.generator")


class RoutineRule(NamedTuple):
    """The parts of a routine the generator needs, detached from the session"""
    id: str
    user_id: str
    frequency: str
    weekdays: List[int]


class CheckinGenerator:
    """Creates placeholder check-ins for the routines due on a given day"""

    def __init__(
        self,
        db: Session,
        timeout_seconds: float = DEFAULT_GENERATOR_TIMEOUT_SECONDS,
        routine_retries: int = DEFAULT_ROUTINE_RETRIES,
        clock: Callable[[], float] = time.monotonic
    ):
        self.db = db
        self.timeout_seconds = timeout_seconds
        self.routine_retries = max(0, routine_retries)
        self.clock = clock
        self.routine_repo = RoutineRepository()
        self.checkin_repo = CheckinRepository()
        self.event_service = EventService(db)
        self.date_service = DateService()

    def run(self, target_date: Union[date, datetime]) -> GenerationResult:
        """
        Ensure every routine due on target_date has a check-in for it.

        Args:
            target_date: Day to generate for (time part is ignored)

        Returns:
            GenerationResult with due/created/skipped_existing/failed counts.
            timed_out is set if the run stopped before visiting every routine;
            placeholders created up to that point are kept.

        Raises:
            DatabaseException: The routine list could not be read
        """
        day = self.date_service.to_day(target_date)
        weekday = self.date_service.weekday_index(day)
        deadline = self.clock() + self.timeout_seconds

        try:
            routines = [
                RoutineRule(r.id, r.user_id, r.frequency, r.weekdays)
                for r in self.routine_repo.get_all(self.db)
            ]
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseException("select", f"could not list routines: {e}")

        result = GenerationResult(target_date=day, total_routines=len(routines))
        logger.info(f"Generating check-ins for {day.isoformat()} (weekday {weekday}): {len(routines)} routines")

        for routine in routines:
            if self.clock() >= deadline:
                result.timed_out = True
                logger.warning(
                    f"Generator timed out after {self.timeout_seconds}s for {day.isoformat()}; "
                    f"stopping with {result.created} created"
                )
                break

            try:
                due = self.date_service.is_due(routine.frequency, routine.weekdays, day)
            except (TypeError, ValueError) as e:
                result.failed += 1
                result.failures[routine.id] = f"invalid recurrence: {e}"
                logger.error(f"Routine {routine.id} has an unreadable recurrence rule: {e}")
                continue

            if not due:
                continue

            result.due += 1
            self._ensure_checkin(routine, day, result)

        logger.info(
            f"Generated check-ins for {day.isoformat()}: due={result.due}, created={result.created}, "
            f"skipped_existing={result.skipped_existing}, failed={result.failed}, "
            f"timed_out={result.timed_out}"
        )
        return result

    def _ensure_checkin(self, routine: RoutineRule, day: date, result: GenerationResult) -> None:
        """Create the placeholder for one routine, retrying transient store failures"""
        attempts = self.routine_retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                self.checkin_repo.create(
                    self.db,
                    routine_id=routine.id,
                    user_id=routine.user_id,
                    checkin_date=day,
                    status=CHECKIN_STATUS_SKIPPED,
                    meta={}
                )
            except DuplicateCheckinException:
                result.skipped_existing += 1
                return
            except (DatabaseException, SQLAlchemyError) as e:
                self.db.rollback()
                last_error = e
                logger.warning(
                    f"Could not create check-in for routine {routine.id} on {day.isoformat()} "
                    f"(attempt {attempt}/{attempts}): {e}"
                )
                continue

            result.created += 1
            self.event_service.record(
                routine.user_id,
                EVENT_CHECKIN_PLANNED,
                {"routine_id": routine.id, "checkin_date": day.isoformat()}
            )
            return

        result.failed += 1
        result.failures[routine.id] = str(last_error)
        logger.error(f"Giving up on check-in for routine {routine.id} on {day.isoformat()}: {last_error}")


def generate_checkins(
    db: Session,
    target_date: Union[date, datetime],
    timeout_seconds: float = DEFAULT_GENERATOR_TIMEOUT_SECONDS,
    routine_retries: int = DEFAULT_ROUTINE_RETRIES
) -> GenerationResult:
    """Run the generator once for target_date"""
    generator = CheckinGenerator(db, timeout_seconds=timeout_seconds, routine_retries=routine_retries)
    return generator.run(target_date)
