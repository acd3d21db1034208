"""
Streak service.

The streak of a routine is a small state machine over
(current_streak, best_streak, last_checkin_date). Every time a check-in
becomes "done" the state moves according to next_streak_state():

- no streak yet             -> (1, 1, D)
- no last check-in date     -> (1, max(1, best), D)
- D == last                 -> unchanged, nothing is written
- D == last + 1 day         -> current + 1
- anything else             -> current resets to 1 (gaps and out-of-order dates alike)

best_streak is max(best, current) after every move, so it never goes down.

Persistence is optimistic: the new state is written only if the row still
holds the state it was computed from; otherwise the row is re-read and the
transition recomputed, up to max_attempts times.
"""
import logging
from datetime import date, datetime
from typing import List, Optional, Union
from sqlalchemy.orm import Session

from routine_tracker.constants import DEFAULT_STREAK_RETRIES
from routine_tracker.exceptions import StreakConflictException, StreakUpdateFailedException
from routine_tracker.models import Streak
from routine_tracker.repositories.streak_repository import StreakRepository, state_of
from routine_tracker.schemas import StreakState
from routine_tracker.services.date_service import DateService

logger = logging.getLogger("routine_tracker.streaks")


def next_streak_state(prior: Optional[StreakState], completion_date: date) -> Optional[StreakState]:
    """
    Compute the streak state after a "done" on completion_date.

    Args:
        prior: Current stored state, or None if the routine has no streak yet
        completion_date: Day the check-in was completed

    Returns:
        The new state, or None when nothing changes (same-day repeat)
    """
    if prior is None:
        return StreakState(current_streak=1, best_streak=1, last_checkin_date=completion_date)

    if prior.last_checkin_date is None:
        return StreakState(
            current_streak=1,
            best_streak=max(1, prior.best_streak),
            last_checkin_date=completion_date
        )

    days_diff = DateService.days_between(prior.last_checkin_date, completion_date)

    if days_diff == 0:
        return None

    if days_diff == 1:
        current = prior.current_streak + 1
    else:
        current = 1

    return StreakState(
        current_streak=current,
        best_streak=max(prior.best_streak, current),
        last_checkin_date=completion_date
    )


class StreakService:
    """Service for streak tracking"""

    def __init__(self, db: Session, max_attempts: int = DEFAULT_STREAK_RETRIES):
        self.db = db
        self.max_attempts = max(1, max_attempts)
        self.streak_repo = StreakRepository()
        self.date_service = DateService()

    def update_streak_on_done(
        self,
        routine_id: str,
        user_id: str,
        completion_date: Union[date, datetime]
    ) -> StreakState:
        """
        Recompute and persist a routine's streak after a check-in was marked done.

        Args:
            routine_id: Routine whose check-in was completed
            user_id: Owner of the routine
            completion_date: Day of the completed check-in (time part is ignored)

        Returns:
            The streak state now stored for the routine

        Raises:
            StreakUpdateFailedException: Concurrent writers kept winning for max_attempts tries
        """
        day = self.date_service.to_day(completion_date)

        for attempt in range(1, self.max_attempts + 1):
            existing = self.streak_repo.get(self.db, routine_id)

            if existing is None:
                new_state = next_streak_state(None, day)
                try:
                    self.streak_repo.create(self.db, routine_id, user_id, new_state)
                except StreakConflictException:
                    logger.info(
                        f"Streak for routine {routine_id} created concurrently "
                        f"(attempt {attempt}/{self.max_attempts}), retrying"
                    )
                    continue
                logger.info(f"Started streak for routine {routine_id} on {day}")
                return new_state

            prior = state_of(existing)
            new_state = next_streak_state(prior, day)

            if new_state is None:
                logger.debug(f"Routine {routine_id} already counted for {day}, streak unchanged")
                return prior

            if self.streak_repo.update(self.db, routine_id, prior, new_state):
                logger.info(
                    f"Streak for routine {routine_id}: current {prior.current_streak} -> "
                    f"{new_state.current_streak}, best {new_state.best_streak}"
                )
                return new_state

            logger.info(
                f"Streak for routine {routine_id} changed during update "
                f"(attempt {attempt}/{self.max_attempts}), retrying"
            )

        logger.warning(f"Giving up on streak update for routine {routine_id}")
        raise StreakUpdateFailedException(routine_id, self.max_attempts)

    def get_streak(self, routine_id: str, user_id: str) -> Optional[Streak]:
        """Get streak for a routine"""
        return self.streak_repo.get_for_user(self.db, routine_id, user_id)

    def get_user_streaks(self, user_id: str) -> List[Streak]:
        """Get all streaks for a user"""
        return self.streak_repo.get_all_for_user(self.db, user_id)
