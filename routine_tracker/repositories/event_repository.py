"""
Event repository - Data access layer for the event log.
"""
from typing import List
from sqlalchemy.orm import Session

from routine_tracker.models import Event


class EventRepository:
    """Repository for Event data access"""

    @staticmethod
    def create(db: Session, user_id: str, event_type: str, payload: dict) -> Event:
        event = Event(user_id=user_id, type=event_type, payload=payload)
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    @staticmethod
    def get_recent(db: Session, user_id: str, limit: int = 100) -> List[Event]:
        """Get a user's most recent events"""
        return db.query(Event).filter(
            Event.user_id == user_id
        ).order_by(Event.timestamp.desc(), Event.id.desc()).limit(limit).all()
