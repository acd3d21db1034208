"""
Process-wide configuration.

Values come from environment variables and are read once at startup;
nothing in the scheduler or the generator re-reads them during a run.
"""
import os
import re
from datetime import time
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from routine_tracker.constants import (
    DEFAULT_CRON_TIME,
    DEFAULT_CRON_TIMEZONE,
    DEFAULT_DATABASE_URL,
    DEFAULT_GENERATOR_TIMEOUT_SECONDS,
    DEFAULT_LOG_DIRECTORY,
    DEFAULT_LOG_FILE,
    DEFAULT_ROUTINE_RETRIES,
    DEFAULT_STREAK_RETRIES,
    TIME_PATTERN,
)
from routine_tracker.exceptions import ConfigurationException

ENV_PREFIX = "ROUTINE_TRACKER_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    database_url: str = DEFAULT_DATABASE_URL

    # Scheduler driver
    cron_enabled: bool = True
    cron_time: str = Field(default=DEFAULT_CRON_TIME, pattern=TIME_PATTERN)
    cron_timezone: str = DEFAULT_CRON_TIMEZONE
    run_on_startup: bool = False

    # Generator / streak engine
    generator_timeout_seconds: float = Field(default=DEFAULT_GENERATOR_TIMEOUT_SECONDS, gt=0)
    routine_retries: int = Field(default=DEFAULT_ROUTINE_RETRIES, ge=0, le=10)
    streak_retries: int = Field(default=DEFAULT_STREAK_RETRIES, ge=1, le=20)

    # HTTP surface
    api_key: str = "change-me"

    # Logging
    log_dir: str = DEFAULT_LOG_DIRECTORY
    log_file: str = DEFAULT_LOG_FILE

    @property
    def fire_time(self) -> time:
        hour, minute = self.cron_time.split(":")
        return time(int(hour), int(minute))

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.cron_timezone)


def _env(name: str, environ: dict) -> Optional[str]:
    value = environ.get(ENV_PREFIX + name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationException(ENV_PREFIX + name, value, "expected true/false")


def _parse_number(name: str, value: str, cast):
    try:
        return cast(value)
    except ValueError:
        raise ConfigurationException(ENV_PREFIX + name, value, f"expected {cast.__name__}")


def load_config(environ: Optional[dict] = None) -> AppConfig:
    """
    Build the configuration from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Validated, immutable AppConfig

    Raises:
        ConfigurationException: If any value is malformed
    """
    environ = os.environ if environ is None else environ
    values = {}

    for key, name in (("database_url", "DATABASE_URL"), ("api_key", "API_KEY"),
                      ("log_dir", "LOG_DIR"), ("log_file", "LOG_FILE")):
        raw = _env(name, environ)
        if raw is not None:
            values[key] = raw

    for key, name in (("cron_enabled", "CRON_ENABLED"), ("run_on_startup", "RUN_ON_STARTUP")):
        raw = _env(name, environ)
        if raw is not None:
            values[key] = _parse_bool(name, raw)

    cron_time = _env("CRON_TIME", environ)
    if cron_time is not None:
        if not re.match(TIME_PATTERN, cron_time):
            raise ConfigurationException(ENV_PREFIX + "CRON_TIME", cron_time, "expected HH:MM")
        values["cron_time"] = cron_time

    timezone_name = _env("CRON_TIMEZONE", environ)
    if timezone_name is not None:
        try:
            ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigurationException(
                ENV_PREFIX + "CRON_TIMEZONE", timezone_name, "unknown timezone"
            )
        values["cron_timezone"] = timezone_name

    timeout = _env("GENERATOR_TIMEOUT", environ)
    if timeout is not None:
        values["generator_timeout_seconds"] = _parse_number("GENERATOR_TIMEOUT", timeout, float)
        if values["generator_timeout_seconds"] <= 0:
            raise ConfigurationException(
                ENV_PREFIX + "GENERATOR_TIMEOUT", timeout, "must be positive"
            )

    for key, name in (("routine_retries", "ROUTINE_RETRIES"), ("streak_retries", "STREAK_RETRIES")):
        raw = _env(name, environ)
        if raw is not None:
            values[key] = _parse_number(name, raw, int)

    try:
        return AppConfig(**values)
    except ValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else "config"
        raise ConfigurationException(field, str(values.get(field)), first["msg"])
