"""
Streak repository - Data access layer for Streak model.

Writes are conditional: update() only applies if the row still holds the
state the caller read, and reports a mismatch instead of overwriting it.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from routine_tracker.exceptions import DatabaseException, StreakConflictException
from routine_tracker.models import Streak
from routine_tracker.schemas import StreakState


class StreakRepository:
    """Repository for Streak data access"""

    @staticmethod
    def get(db: Session, routine_id: str) -> Optional[Streak]:
        """Get the streak row for a routine, always re-read from the store"""
        return db.get(Streak, routine_id, populate_existing=True)

    @staticmethod
    def get_for_user(db: Session, routine_id: str, user_id: str) -> Optional[Streak]:
        return db.query(Streak).filter(
            Streak.routine_id == routine_id,
            Streak.user_id == user_id
        ).first()

    @staticmethod
    def get_all_for_user(db: Session, user_id: str) -> List[Streak]:
        """Get all of a user's streaks, longest current streak first"""
        return db.query(Streak).filter(
            Streak.user_id == user_id
        ).order_by(Streak.current_streak.desc(), Streak.best_streak.desc()).all()

    @staticmethod
    def create(db: Session, routine_id: str, user_id: str, state: StreakState) -> Streak:
        """
        Insert the first streak row for a routine.

        Raises:
            StreakConflictException: Another writer created the row first
            DatabaseException: Any other store failure
        """
        streak = Streak(
            routine_id=routine_id,
            user_id=user_id,
            current_streak=state.current_streak,
            best_streak=state.best_streak,
            last_checkin_date=state.last_checkin_date
        )
        try:
            db.add(streak)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if StreakRepository.get(db, routine_id) is not None:
                raise StreakConflictException(routine_id)
            raise DatabaseException("insert", str(e.orig))
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("insert", str(e))

        db.refresh(streak)
        return streak

    @staticmethod
    def update(
        db: Session,
        routine_id: str,
        expected: StreakState,
        new_state: StreakState
    ) -> bool:
        """
        Compare-and-set update of a streak row.

        Returns:
            True if the row matched `expected` and was updated, False on conflict
        """
        if expected.last_checkin_date is None:
            last_matches = Streak.last_checkin_date.is_(None)
        else:
            last_matches = Streak.last_checkin_date == expected.last_checkin_date

        stmt = (
            update(Streak)
            .where(
                Streak.routine_id == routine_id,
                Streak.current_streak == expected.current_streak,
                Streak.best_streak == expected.best_streak,
                last_matches
            )
            .values(
                current_streak=new_state.current_streak,
                best_streak=new_state.best_streak,
                last_checkin_date=new_state.last_checkin_date,
                updated_at=datetime.now()
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = db.execute(stmt)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("update", str(e))

        return result.rowcount == 1


def state_of(streak: Streak) -> StreakState:
    """Snapshot a Streak row as an immutable StreakState"""
    return StreakState(
        current_streak=streak.current_streak,
        best_streak=streak.best_streak,
        last_checkin_date=streak.last_checkin_date
    )
