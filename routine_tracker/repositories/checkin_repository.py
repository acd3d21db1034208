"""
Checkin repository - Data access layer for Checkin model.

The (routine_id, checkin_date) unique constraint is what makes concurrent
placeholder creation safe; create() turns a violation of it into
DuplicateCheckinException so callers can treat it as benign.
"""
from datetime import date
from typing import List, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from routine_tracker.exceptions import DatabaseException, DuplicateCheckinException
from routine_tracker.models import Checkin


class CheckinRepository:
    """Repository for Checkin data access"""

    @staticmethod
    def get_for_user(db: Session, checkin_id: str, user_id: str) -> Optional[Checkin]:
        """Get check-in by ID, only if it belongs to the user"""
        return db.query(Checkin).filter(
            Checkin.id == checkin_id,
            Checkin.user_id == user_id
        ).first()

    @staticmethod
    def find(db: Session, routine_id: str, checkin_date: date) -> Optional[Checkin]:
        """Get the check-in for a routine on a given day"""
        return db.query(Checkin).filter(
            Checkin.routine_id == routine_id,
            Checkin.checkin_date == checkin_date
        ).first()

    @staticmethod
    def get_in_range(
        db: Session,
        user_id: str,
        routine_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> List[Checkin]:
        """Get a user's check-ins (optionally for one routine) within an inclusive date range"""
        query = db.query(Checkin).filter(Checkin.user_id == user_id)

        if routine_id is not None:
            query = query.filter(Checkin.routine_id == routine_id)
        if date_from is not None:
            query = query.filter(Checkin.checkin_date >= date_from)
        if date_to is not None:
            query = query.filter(Checkin.checkin_date <= date_to)

        return query.order_by(Checkin.checkin_date.desc()).all()

    @staticmethod
    def create(
        db: Session,
        routine_id: str,
        user_id: str,
        checkin_date: date,
        status: str,
        note: Optional[str] = None,
        meta: Optional[dict] = None
    ) -> Checkin:
        """
        Insert a check-in as a single atomic unit.

        Raises:
            DuplicateCheckinException: A check-in for (routine_id, checkin_date) already exists
            DatabaseException: Any other store failure
        """
        checkin = Checkin(
            routine_id=routine_id,
            user_id=user_id,
            checkin_date=checkin_date,
            status=status,
            note=note,
            meta=dict(meta or {})
        )
        try:
            db.add(checkin)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if CheckinRepository.find(db, routine_id, checkin_date) is not None:
                raise DuplicateCheckinException(routine_id, checkin_date)
            raise DatabaseException("insert", str(e.orig))
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("insert", str(e))

        db.refresh(checkin)
        return checkin

    @staticmethod
    def update_status(
        db: Session,
        checkin: Checkin,
        status: str,
        note: Optional[str] = None,
        meta: Optional[dict] = None
    ) -> Checkin:
        """Change status; note replaces the old one only if given, meta is merged"""
        checkin.status = status
        if note is not None:
            checkin.note = note
        if meta:
            checkin.meta = {**(checkin.meta or {}), **meta}
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("update", str(e))
        db.refresh(checkin)
        return checkin

    @staticmethod
    def delete(db: Session, checkin: Checkin) -> None:
        """Delete a check-in"""
        try:
            db.delete(checkin)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("delete", str(e))
