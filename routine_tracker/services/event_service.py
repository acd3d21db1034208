"""
Event logging service.
Best-effort telemetry: a failed write is logged and swallowed, never raised,
so it cannot undo the change that produced the event.
"""
import logging
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from routine_tracker.models import Event
from routine_tracker.repositories.event_repository import EventRepository

logger = logging.getLogger("routine_tracker.events")


class EventService:
    """Service for recording domain events"""

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventRepository()

    def record(self, user_id: str, event_type: str, payload: dict) -> Optional[Event]:
        """
        Record an event.

        Returns:
            The stored event, or None if the write failed
        """
        try:
            return self.event_repo.create(self.db, user_id, event_type, payload)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Failed to record event {event_type} for user {user_id}: {e}")
            return None

    def get_recent(self, user_id: str, limit: int = 100) -> List[Event]:
        return self.event_repo.get_recent(self.db, user_id, limit)
