"""
Custom exceptions for the routine tracker.
Provides specific exception types so callers can tell benign outcomes
(a duplicate check-in) apart from real failures.
"""
from datetime import date


class RoutineTrackerException(Exception):
    """Base exception for the routine tracker"""
    pass


class ValidationException(RoutineTrackerException):
    """Raised when data validation fails"""
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"Validation error for {field}: {message}")


class RoutineNotFoundException(RoutineTrackerException):
    """Raised when a routine is not found"""
    def __init__(self, routine_id: str):
        self.routine_id = routine_id
        super().__init__(f"Routine with ID {routine_id} not found")


class CheckinNotFoundException(RoutineTrackerException):
    """Raised when a check-in is not found"""
    def __init__(self, checkin_id: str):
        self.checkin_id = checkin_id
        super().__init__(f"Check-in with ID {checkin_id} not found")


class DuplicateCheckinException(RoutineTrackerException):
    """Raised when a check-in already exists for (routine, date)"""
    def __init__(self, routine_id: str, checkin_date: date):
        self.routine_id = routine_id
        self.checkin_date = checkin_date
        super().__init__(
            f"Check-in already exists for routine {routine_id} on {checkin_date.isoformat()}"
        )


class DatabaseException(RoutineTrackerException):
    """Raised when database operations fail"""
    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Database {operation} failed: {details}")


class StreakConflictException(RoutineTrackerException):
    """Raised when a streak row changed between read and write"""
    def __init__(self, routine_id: str):
        self.routine_id = routine_id
        super().__init__(f"Concurrent streak update detected for routine {routine_id}")


class StreakUpdateFailedException(RoutineTrackerException):
    """Raised when a streak update keeps conflicting after all retries"""
    def __init__(self, routine_id: str, attempts: int):
        self.routine_id = routine_id
        self.attempts = attempts
        self.checkin_id = None  # check-in left not-done; mark-done can be retried on it
        super().__init__(
            f"Streak update for routine {routine_id} failed after {attempts} attempts"
        )


class ConfigurationException(RoutineTrackerException):
    """Raised when process configuration is invalid"""
    def __init__(self, key: str, value: str, message: str):
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")
