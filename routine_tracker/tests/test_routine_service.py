"""
Tests for RoutineService and recurrence rule validation.
"""
import pytest
from datetime import date
from unittest.mock import patch
from sqlalchemy.exc import OperationalError

from routine_tracker.exceptions import DatabaseException, RoutineNotFoundException, ValidationException
from routine_tracker.schemas import RoutineCreate, RoutineUpdate, validate_weekdays
from routine_tracker.services.checkin_generator import generate_checkins
from routine_tracker.services.checkin_service import CheckinService
from routine_tracker.services.routine_service import RoutineService
from routine_tracker.repositories.streak_repository import StreakRepository
from routine_tracker.tests.conftest import create_checkin


USER_ID = "user-1"


class TestValidateWeekdays:
    """Tests for recurrence rule validation"""

    def test_daily_without_weekdays(self):
        assert validate_weekdays("daily", []) is None

    def test_daily_with_weekdays(self):
        assert validate_weekdays("daily", [1]) is not None

    def test_weekly_needs_a_weekday(self):
        assert "at least one" in validate_weekdays("weekly", [])

    def test_weekly_out_of_range(self):
        assert validate_weekdays("weekly", [0, 3]) is not None
        assert validate_weekdays("weekly", [8]) is not None

    def test_weekly_repeated_day(self):
        assert validate_weekdays("weekly", [3, 3]) is not None

    def test_weekly_valid(self):
        assert validate_weekdays("weekly", [1, 3, 5]) is None
        assert validate_weekdays("weekly", [7]) is None


class TestCreateRoutine:
    """Tests for routine creation"""

    def test_create_daily(self, db_session):
        routine = RoutineService(db_session).create_routine(
            RoutineCreate(title="Meditate", time_of_day="07:30"), USER_ID
        )

        assert routine.id
        assert routine.user_id == USER_ID
        assert routine.frequency == "daily"
        assert routine.weekdays == []
        assert routine.time_of_day == "07:30"

    def test_create_weekly_sorts_weekdays(self, db_session):
        routine = RoutineService(db_session).create_routine(
            RoutineCreate(title="Gym", frequency="weekly", weekdays=[5, 1, 3]), USER_ID
        )

        assert routine.weekdays == [1, 3, 5]

    def test_weekly_without_weekdays_rejected(self, db_session):
        with pytest.raises(ValidationException) as exc_info:
            RoutineService(db_session).create_routine(
                RoutineCreate(title="Gym", frequency="weekly"), USER_ID
            )

        assert exc_info.value.field == "weekdays"
        assert RoutineService(db_session).get_routines(USER_ID) == []


class TestUpdateRoutine:
    """Tests for partial routine updates"""

    def test_partial_update_keeps_other_fields(self, db_session):
        service = RoutineService(db_session)
        routine = service.create_routine(
            RoutineCreate(title="Gym", frequency="weekly", weekdays=[1, 3]), USER_ID
        )

        updated = service.update_routine(routine.id, RoutineUpdate(title="Gym session"), USER_ID)

        assert updated.title == "Gym session"
        assert updated.frequency == "weekly"
        assert updated.weekdays == [1, 3]

    def test_switch_to_daily_clears_weekdays(self, db_session):
        service = RoutineService(db_session)
        routine = service.create_routine(
            RoutineCreate(title="Gym", frequency="weekly", weekdays=[1, 3]), USER_ID
        )

        updated = service.update_routine(routine.id, RoutineUpdate(frequency="daily"), USER_ID)

        assert updated.frequency == "daily"
        assert updated.weekdays == []

    def test_switch_to_weekly_requires_weekdays(self, db_session):
        service = RoutineService(db_session)
        routine = service.create_routine(RoutineCreate(title="Read"), USER_ID)

        with pytest.raises(ValidationException):
            service.update_routine(routine.id, RoutineUpdate(frequency="weekly"), USER_ID)

    def test_update_changes_generation(self, db_session):
        """Rule changes take effect on the next generator run"""
        service = RoutineService(db_session)
        routine = service.create_routine(RoutineCreate(title="Read"), USER_ID)
        service.update_routine(
            routine.id, RoutineUpdate(frequency="weekly", weekdays=[1]), USER_ID
        )

        result = generate_checkins(db_session, date(2025, 11, 11))

        assert result.due == 0

    def test_update_unknown(self, db_session):
        with pytest.raises(RoutineNotFoundException):
            RoutineService(db_session).update_routine("missing", RoutineUpdate(title="x"), USER_ID)


class TestDeleteRoutine:
    """Tests for routine deletion"""

    def test_delete_keeps_history(self, db_session, monday):
        service = RoutineService(db_session)
        routine = service.create_routine(RoutineCreate(title="Read"), USER_ID)
        routine_id = routine.id
        checkin = create_checkin(db_session, routine, monday)
        CheckinService(db_session).mark_done(checkin.id, USER_ID)

        service.delete_routine(routine_id, USER_ID)

        assert service.get_routines(USER_ID) == []
        assert len(CheckinService(db_session).get_routine_checkins(routine_id, USER_ID)) == 1
        assert StreakRepository.get(db_session, routine_id) is not None

    def test_deleted_routine_not_generated(self, db_session, monday):
        service = RoutineService(db_session)
        routine = service.create_routine(RoutineCreate(title="Read"), USER_ID)
        service.delete_routine(routine.id, USER_ID)

        result = generate_checkins(db_session, monday)

        assert result.total_routines == 0

    def test_get_other_users_routine(self, db_session):
        routine = RoutineService(db_session).create_routine(RoutineCreate(title="Read"), "someone-else")

        with pytest.raises(RoutineNotFoundException):
            RoutineService(db_session).get_routine(routine.id, USER_ID)


class TestStoreFailures:
    """Store errors surface as DatabaseException and leave nothing half-written"""

    def failing_commit(self):
        return OperationalError("COMMIT", {}, Exception("disk I/O error"))

    def test_create_failure(self, db_session):
        service = RoutineService(db_session)

        with patch.object(db_session, "commit", side_effect=self.failing_commit()):
            with pytest.raises(DatabaseException) as exc_info:
                service.create_routine(RoutineCreate(title="Read"), USER_ID)

        assert exc_info.value.operation == "insert"
        assert service.get_routines(USER_ID) == []

    def test_update_failure_keeps_old_values(self, db_session):
        service = RoutineService(db_session)
        routine = service.create_routine(RoutineCreate(title="Read"), USER_ID)

        with patch.object(db_session, "commit", side_effect=self.failing_commit()):
            with pytest.raises(DatabaseException) as exc_info:
                service.update_routine(routine.id, RoutineUpdate(title="Write"), USER_ID)

        assert exc_info.value.operation == "update"
        assert service.get_routine(routine.id, USER_ID).title == "Read"

    def test_delete_failure_keeps_routine(self, db_session):
        service = RoutineService(db_session)
        routine = service.create_routine(RoutineCreate(title="Read"), USER_ID)

        with patch.object(db_session, "commit", side_effect=self.failing_commit()):
            with pytest.raises(DatabaseException) as exc_info:
                service.delete_routine(routine.id, USER_ID)

        assert exc_info.value.operation == "delete"
        assert len(service.get_routines(USER_ID)) == 1
