"""
Application-wide constants.
"""

# Recurrence kinds
RECURRENCE_DAILY = "daily"
RECURRENCE_WEEKLY = "weekly"

# Weekday indexes (Monday = 1 ... Sunday = 7)
WEEKDAY_MIN = 1
WEEKDAY_MAX = 7

# Check-in statuses
CHECKIN_STATUS_DONE = "done"
CHECKIN_STATUS_SKIPPED = "skipped"

# Event types written to the event log
EVENT_CHECKIN_PLANNED = "checkin_planned"
EVENT_CHECKIN_CREATED = "checkin_created"
EVENT_CHECKIN_DONE = "checkin_done"

# Scheduler defaults
DEFAULT_CRON_TIME = "00:05"
DEFAULT_CRON_TIMEZONE = "Europe/Istanbul"
DEFAULT_GENERATOR_TIMEOUT_SECONDS = 300
DEFAULT_ROUTINE_RETRIES = 2
DEFAULT_STREAK_RETRIES = 3
GENERATOR_JOB_ID = "generate_tomorrow_checkins"
MANUAL_GENERATOR_JOB_ID = "manual_generate_checkins"
MISFIRE_GRACE_SECONDS = 3600

# Storage / logging defaults
DEFAULT_DATABASE_URL = "sqlite:///./routines.db"
DEFAULT_LOG_DIRECTORY = "./logs"
DEFAULT_LOG_FILE = "app.log"

TIME_PATTERN = r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"
TIME_OF_DAY_PATTERN = r"^([0-1][0-9]|2[0-3]):[0-5][0-9](:[0-5][0-9])?$"
