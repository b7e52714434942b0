"""Tests for configuration settings."""

import json
import logging
from logging.handlers import RotatingFileHandler

import pytest
import structlog
from pydantic import ValidationError

from solarsync.config.logging import MASK, configure_logging, mask_secrets
from solarsync.config.settings import Settings


class TestSettings:
    """Test Settings class."""

    def test_settings_default_values(self, monkeypatch):
        """Test default values are set correctly."""
        for name in ("SOLARSYNC_SYNC_TIMEZONE", "SOLARSYNC_SYNC_WINDOW_START", "SOLARSYNC_SYNC_WINDOW_END"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.sync_timezone == "Asia/Kolkata"
        assert settings.sync_window_start == "19:00"
        assert settings.sync_window_end == "06:00"
        assert settings.default_sync_interval_minutes == 15
        assert settings.alert_lookback_days == 365
        assert settings.token_expiry_buffer_seconds == 300
        assert settings.enable_plant_sync_cron is True
        assert settings.enable_alert_sync_cron is True
        assert settings.scheduler_enabled is False

    def test_settings_from_environment(self, monkeypatch):
        """Test values are read from SOLARSYNC_ variables."""
        monkeypatch.setenv("SOLARSYNC_DATABASE_URL", "sqlite:///:memory:")
        monkeypatch.setenv("SOLARSYNC_ENABLE_PLANT_SYNC_CRON", "false")
        monkeypatch.setenv("SOLARSYNC_PLANT_BATCH_SIZE", "25")

        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite:///:memory:"
        assert settings.enable_plant_sync_cron is False
        assert settings.plant_batch_size == 25

    def test_cron_secret_is_secret(self):
        """Test that the cron secret is not exposed in repr."""
        settings = Settings(cron_secret="hunter2")

        assert "hunter2" not in repr(settings)
        assert settings.get_cron_secret() == "hunter2"

    def test_blank_cron_secret_is_unset(self):
        """Test an empty secret leaves the cron endpoints open."""
        assert Settings(cron_secret="  ").get_cron_secret() is None
        assert Settings(cron_secret=None).get_cron_secret() is None

    @pytest.mark.parametrize("value", ["7pm", "24:00", "12:60", ""])
    def test_invalid_window_time(self, value):
        """Test window times must be HH:MM."""
        with pytest.raises(ValidationError):
            Settings(sync_window_start=value)

    def test_invalid_timezone(self):
        """Test unknown timezones are rejected."""
        with pytest.raises(ValidationError):
            Settings(sync_timezone="Mars/Olympus_Mons")

    @pytest.mark.parametrize(
        "field", ["plant_batch_size", "alert_page_size", "scheduler_interval_minutes"]
    )
    def test_non_positive_sizes_rejected(self, field):
        """Test sizes and intervals must be positive."""
        with pytest.raises(ValidationError):
            Settings(**{field: 0})

    @pytest.mark.parametrize("value", [0, -5, 61, 120])
    def test_poll_seconds_out_of_range(self, value):
        """Test the scheduler poll interval stays within one minute."""
        with pytest.raises(ValidationError):
            Settings(scheduler_poll_seconds=value)

    @pytest.mark.parametrize("value", [0.5, 20, 60])
    def test_poll_seconds_in_range(self, value):
        assert Settings(scheduler_poll_seconds=value).scheduler_poll_seconds == value


class TestLogging:
    """Test the logging configuration."""

    @pytest.fixture
    def restore_logging(self):
        root = logging.getLogger()
        level = root.level
        yield
        for handler in root.handlers[:]:
            if type(handler) in (logging.StreamHandler, RotatingFileHandler):
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)
        structlog.reset_defaults()

    def test_mask_secrets(self):
        event = {"event": "login", "password": "hunter2", "appSecret": "s", "token": None, "vendor_id": 3}

        masked = mask_secrets(None, "info", event)

        assert masked["password"] == MASK
        assert masked["appSecret"] == MASK
        assert masked["token"] is None
        assert masked["vendor_id"] == 3

    def test_json_events_reach_log_file(self, tmp_path, restore_logging):
        """Test structlog events go through the file handler with secrets masked."""
        log_file = tmp_path / "logs" / "solarsync.log"
        configure_logging(Settings(_env_file=None, log_file=str(log_file), log_format="json"))

        structlog.get_logger("solarsync.test").info("Vendor login", vendor_id=3, password="hunter2")
        for handler in logging.getLogger().handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["event"] == "Vendor login"
        assert entry["logger"] == "solarsync.test"
        assert entry["vendor_id"] == 3
        assert entry["password"] == MASK
