"""
Check-in service.
Handles user-driven check-ins: direct creation, marking placeholders done,
deletion and listing. Every transition to "done" is handed to the streak service.
"""
import logging
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session

from routine_tracker.constants import (
    CHECKIN_STATUS_DONE,
    CHECKIN_STATUS_SKIPPED,
    DEFAULT_STREAK_RETRIES,
    EVENT_CHECKIN_CREATED,
    EVENT_CHECKIN_DONE,
)
from routine_tracker.exceptions import (
    CheckinNotFoundException, RoutineNotFoundException, StreakUpdateFailedException
)
from routine_tracker.models import Checkin
from routine_tracker.repositories.checkin_repository import CheckinRepository
from routine_tracker.repositories.routine_repository import RoutineRepository
from routine_tracker.schemas import CheckinCreate, MarkDone, StreakState
from routine_tracker.services.event_service import EventService
from routine_tracker.services.streak_service import StreakService

logger = logging.getLogger("routine_tracker.checkins")


class CheckinService:
    """Service for check-in management"""

    def __init__(self, db: Session, streak_retries: int = DEFAULT_STREAK_RETRIES):
        self.db = db
        self.checkin_repo = CheckinRepository()
        self.routine_repo = RoutineRepository()
        self.streak_service = StreakService(db, max_attempts=streak_retries)
        self.event_service = EventService(db)

    def get_checkins(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> List[Checkin]:
        """Get a user's check-ins within an inclusive date range, newest first"""
        return self.checkin_repo.get_in_range(self.db, user_id, None, date_from, date_to)

    def get_routine_checkins(
        self,
        routine_id: str,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> List[Checkin]:
        """Get check-ins for one routine, newest first"""
        return self.checkin_repo.get_in_range(self.db, user_id, routine_id, date_from, date_to)

    def create_checkin(self, data: CheckinCreate, user_id: str) -> Checkin:
        """
        Create a check-in directly from a user action.

        If the streak cannot be updated the check-in is kept as "skipped" and
        the exception carries its id, so the caller can finish with mark_done.

        Raises:
            RoutineNotFoundException: Routine does not exist or is not the user's
            DuplicateCheckinException: The routine already has a check-in that day
            StreakUpdateFailedException: Streak kept conflicting
        """
        routine = self.routine_repo.get_for_user(self.db, data.routine_id, user_id)
        if not routine:
            raise RoutineNotFoundException(data.routine_id)

        checkin = self.checkin_repo.create(
            self.db,
            routine_id=routine.id,
            user_id=user_id,
            checkin_date=data.checkin_date,
            status=data.status,
            note=data.note,
            meta=data.meta
        )

        streak_error = None
        if checkin.status == CHECKIN_STATUS_DONE:
            try:
                self._apply_done(checkin, user_id, previous_status=CHECKIN_STATUS_SKIPPED)
            except StreakUpdateFailedException as e:
                streak_error = e

        self.event_service.record(user_id, EVENT_CHECKIN_CREATED, {
            "checkin_id": checkin.id,
            "routine_id": checkin.routine_id,
            "status": checkin.status,
        })
        if streak_error is not None:
            raise streak_error
        return checkin

    def mark_done(self, checkin_id: str, user_id: str, data: Optional[MarkDone] = None) -> Checkin:
        """
        Mark a check-in (usually a generated placeholder) as done.

        Note is replaced only when given; meta is merged into the existing meta.
        Only a not-done -> done transition reaches the streak; editing a check-in
        that is already done leaves the streak alone.

        Raises:
            CheckinNotFoundException: Check-in does not exist or is not the user's
            StreakUpdateFailedException: Streak kept conflicting; the check-in keeps
                its previous status and the caller may retry
        """
        data = data or MarkDone()
        checkin = self.checkin_repo.get_for_user(self.db, checkin_id, user_id)
        if not checkin:
            raise CheckinNotFoundException(checkin_id)

        previous_status = checkin.status
        checkin = self.checkin_repo.update_status(
            self.db, checkin, CHECKIN_STATUS_DONE, note=data.note, meta=data.meta
        )

        if previous_status == CHECKIN_STATUS_DONE:
            logger.debug(f"Check-in {checkin.id} was already done, streak unchanged")
            return checkin

        self._apply_done(checkin, user_id, previous_status)

        self.event_service.record(user_id, EVENT_CHECKIN_DONE, {
            "checkin_id": checkin.id,
            "routine_id": checkin.routine_id,
        })
        return checkin

    def _apply_done(self, checkin: Checkin, user_id: str, previous_status: str) -> StreakState:
        """Run the streak for a fresh "done"; on failure put the old status back"""
        try:
            return self.on_checkin_marked_done(
                checkin.id, user_id, checkin.routine_id, checkin.checkin_date
            )
        except StreakUpdateFailedException as e:
            self.checkin_repo.update_status(self.db, checkin, previous_status)
            e.checkin_id = checkin.id
            logger.warning(
                f"Streak update failed for check-in {checkin.id}, status reverted to {previous_status}"
            )
            raise

    def on_checkin_marked_done(
        self,
        checkin_id: str,
        user_id: str,
        routine_id: str,
        checkin_date: date
    ) -> StreakState:
        """Feed one "done" transition into the streak state machine"""
        logger.debug(f"Check-in {checkin_id} done for routine {routine_id} on {checkin_date}")
        return self.streak_service.update_streak_on_done(routine_id, user_id, checkin_date)

    def delete_checkin(self, checkin_id: str, user_id: str) -> None:
        """
        Delete a check-in. The routine's streak is left as it is.

        Raises:
            CheckinNotFoundException: Check-in does not exist or is not the user's
        """
        checkin = self.checkin_repo.get_for_user(self.db, checkin_id, user_id)
        if not checkin:
            raise CheckinNotFoundException(checkin_id)
        self.checkin_repo.delete(self.db, checkin)
