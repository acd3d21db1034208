"""
Tests for environment configuration loading.
"""
import pytest
from datetime import time
from pydantic import ValidationError

from routine_tracker.config import AppConfig, load_config
from routine_tracker.exceptions import ConfigurationException


class TestLoadConfig:
    """Tests for load_config"""

    def test_defaults(self):
        config = load_config({})

        assert config.cron_enabled is True
        assert config.cron_time == "00:05"
        assert config.cron_timezone == "Europe/Istanbul"
        assert config.generator_timeout_seconds == 300
        assert config.routine_retries == 2
        assert config.streak_retries == 3
        assert config.fire_time == time(0, 5)

    def test_reads_prefixed_variables(self):
        config = load_config({
            "ROUTINE_TRACKER_DATABASE_URL": "sqlite:///tmp/test.db",
            "ROUTINE_TRACKER_CRON_ENABLED": "false",
            "ROUTINE_TRACKER_CRON_TIME": "23:45",
            "ROUTINE_TRACKER_CRON_TIMEZONE": "UTC",
            "ROUTINE_TRACKER_RUN_ON_STARTUP": "yes",
            "ROUTINE_TRACKER_GENERATOR_TIMEOUT": "12.5",
            "ROUTINE_TRACKER_ROUTINE_RETRIES": "0",
            "ROUTINE_TRACKER_STREAK_RETRIES": "5",
            "ROUTINE_TRACKER_API_KEY": "secret",
        })

        assert config.database_url == "sqlite:///tmp/test.db"
        assert config.cron_enabled is False
        assert config.fire_time == time(23, 45)
        assert str(config.tzinfo) == "UTC"
        assert config.run_on_startup is True
        assert config.generator_timeout_seconds == 12.5
        assert config.routine_retries == 0
        assert config.streak_retries == 5
        assert config.api_key == "secret"

    def test_blank_values_use_defaults(self):
        config = load_config({"ROUTINE_TRACKER_CRON_TIME": "  "})

        assert config.cron_time == "00:05"

    def test_unprefixed_variables_ignored(self):
        assert load_config({"CRON_TIME": "12:00"}).cron_time == "00:05"

    @pytest.mark.parametrize("name,value", [
        ("CRON_TIME", "24:00"),
        ("CRON_TIME", "7:5"),
        ("CRON_TIMEZONE", "Mars/Olympus"),
        ("CRON_ENABLED", "maybe"),
        ("GENERATOR_TIMEOUT", "soon"),
        ("GENERATOR_TIMEOUT", "0"),
        ("ROUTINE_RETRIES", "two"),
        ("ROUTINE_RETRIES", "-1"),
        ("STREAK_RETRIES", "0"),
    ])
    def test_invalid_values_rejected(self, name, value):
        with pytest.raises(ConfigurationException):
            load_config({f"ROUTINE_TRACKER_{name}": value})

    def test_config_is_immutable(self):
        config = AppConfig()

        with pytest.raises(ValidationError):
            config.cron_time = "01:00"
