"""
Routine repository - Data access layer for Routine model.
This is the Routine Store; the generator only ever reads from it.
"""
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from routine_tracker.exceptions import DatabaseException
from routine_tracker.models import Routine


class RoutineRepository:
    """Repository for Routine data access"""

    @staticmethod
    def get_for_user(db: Session, routine_id: str, user_id: str) -> Optional[Routine]:
        """Get routine by ID, only if it belongs to the user"""
        return db.query(Routine).filter(
            Routine.id == routine_id,
            Routine.user_id == user_id
        ).first()

    @staticmethod
    def get_all(db: Session) -> List[Routine]:
        """Get every routine (generator snapshot)"""
        return db.query(Routine).order_by(Routine.created_at, Routine.id).all()

    @staticmethod
    def get_all_for_user(db: Session, user_id: str) -> List[Routine]:
        """Get a user's routines, newest first"""
        return db.query(Routine).filter(
            Routine.user_id == user_id
        ).order_by(Routine.created_at.desc()).all()

    @staticmethod
    def create(db: Session, routine: Routine) -> Routine:
        """Create a new routine"""
        try:
            db.add(routine)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("insert", str(e))
        db.refresh(routine)
        return routine

    @staticmethod
    def update(db: Session, routine: Routine) -> Routine:
        """Update existing routine"""
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("update", str(e))
        db.refresh(routine)
        return routine

    @staticmethod
    def delete(db: Session, routine: Routine) -> None:
        """Delete a routine (check-ins and streaks are left in place)"""
        try:
            db.delete(routine)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("delete", str(e))
