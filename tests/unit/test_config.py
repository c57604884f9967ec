"""Unit tests for configuration settings and device provisioning files."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from catlocator.config.devices import load_device_assignments
from catlocator.config.settings import Settings
from catlocator.domain.exceptions import ConfigurationException
from catlocator.infrastructure.database.connection import get_database_url

from ..fixtures.sample_data import SAMPLE_DEVICES_YAML, settings_kwargs


REQUIRED_ENV = {
    "DATABASE_URL": "postgres://cat:secret@db:5432/cat",
    "BOOT_WEBHOOK_URL": "http://hooks/boot",
    "LOCATION_WEBHOOK_URL": "http://hooks/location",
}


class TestSettings:
    """Test Settings configuration class."""

    def test_settings_with_environment_variables(self):
        """Test settings loading from environment variables."""
        env_vars = {
            **REQUIRED_ENV,
            "PORT": "5000",
            "ROOM_COUNT": "4",
            "READING_WINDOW_SECONDS": "30",
            "LOCK_TIMEOUT_SECONDS": "2.5",
            "NOTIFY_TIMEOUT_SECONDS": "3",
            "LOG_LEVEL": "DEBUG",
            "ENVIRONMENT": "production",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

        assert settings.port == 5000
        assert settings.database_url == "postgres://cat:secret@db:5432/cat"
        assert settings.boot_webhook_url == "http://hooks/boot"
        assert settings.location_webhook_url == "http://hooks/location"
        assert settings.room_count == 4
        assert settings.reading_window_seconds == 30
        assert settings.lock_timeout_seconds == 2.5
        assert settings.notify_timeout_seconds == 3.0
        assert settings.log_level == "DEBUG"
        assert settings.environment == "production"

    def test_settings_default_values(self):
        """Test settings with default values."""
        with patch.dict(os.environ, REQUIRED_ENV, clear=True):
            settings = Settings(_env_file=None)

        assert settings.port == 8080
        assert settings.room_count == 3
        assert settings.reading_window_seconds == 60
        assert settings.lock_timeout_seconds == 10.0
        assert settings.notify_timeout_seconds == 10.0
        assert settings.log_level == "INFO"
        assert settings.environment == "development"

    @pytest.mark.parametrize("missing", sorted(REQUIRED_ENV))
    def test_required_fields(self, missing):
        """Test that each required field must be supplied."""
        env_vars = {k: v for k, v in REQUIRED_ENV.items() if k != missing}

        with patch.dict(os.environ, env_vars, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    @pytest.mark.parametrize(
        "field, value",
        [
            ("room_count", 0),
            ("reading_window_seconds", 0),
            ("lock_timeout_seconds", 0),
            ("notify_timeout_seconds", -1),
        ],
    )
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **settings_kwargs(**{field: value}))


class TestDatabaseUrl:
    """Test database URL normalization."""

    @pytest.mark.parametrize(
        "configured, expected",
        [
            ("postgres://u:p@host:5432/db", "postgresql+asyncpg://u:p@host:5432/db"),
            ("postgresql://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
            ("postgresql+asyncpg://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
            ("sqlite+aiosqlite:///tmp/cat.db", "sqlite+aiosqlite:///tmp/cat.db"),
        ],
    )
    def test_get_database_url(self, configured, expected):
        settings = Settings(_env_file=None, **settings_kwargs(database_url=configured))

        assert get_database_url(settings) == expected


class TestDeviceAssignments:
    """Test loading device assignments from YAML."""

    def test_load_device_assignments(self, tmp_path):
        config_path = tmp_path / "devices.yaml"
        config_path.write_text(SAMPLE_DEVICES_YAML, encoding="utf-8")

        assignments = load_device_assignments(config_path)

        by_device = {a.device_id: a.room for a in assignments}
        assert by_device == {
            "aa:bb:cc:00:00:01": "living",
            "aa:bb:cc:00:00:02": "bedroom",
            "aa:bb:cc:00:00:04": "bedroom",
            "aa:bb:cc:00:00:03": "kitchen",
        }

    def test_room_without_devices_is_skipped(self, tmp_path):
        config_path = tmp_path / "devices.yaml"
        config_path.write_text("rooms:\n  attic:\n  living:\n    devices: [a1]\n", encoding="utf-8")

        assignments = load_device_assignments(config_path)

        assert [(a.device_id, a.room) for a in assignments] == [("a1", "living")]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationException) as exc_info:
            load_device_assignments(tmp_path / "absent.yaml")

        assert exc_info.value.error_code == "DEVICE_CONFIG_NOT_FOUND"

    def test_invalid_yaml(self, tmp_path):
        config_path = tmp_path / "devices.yaml"
        config_path.write_text("rooms: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigurationException) as exc_info:
            load_device_assignments(config_path)

        assert exc_info.value.error_code == "DEVICE_CONFIG_INVALID"

    def test_missing_rooms_section(self, tmp_path):
        config_path = tmp_path / "devices.yaml"
        config_path.write_text("devices: []\n", encoding="utf-8")

        with pytest.raises(ConfigurationException):
            load_device_assignments(config_path)

    def test_device_in_two_rooms(self, tmp_path):
        config_path = tmp_path / "devices.yaml"
        config_path.write_text(
            "rooms:\n  living:\n    devices: [a1]\n  kitchen:\n    devices: [a1]\n",
            encoding="utf-8",
        )

        with pytest.raises(ConfigurationException) as exc_info:
            load_device_assignments(config_path)

        assert exc_info.value.error_code == "DEVICE_CONFIG_CONFLICT"
