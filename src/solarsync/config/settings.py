"""Application settings using Pydantic Settings."""

import re
from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SOLARSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./solarsync.db",
        description="Database connection URL",
    )

    # Vendor API Configuration
    api_timeout: int = Field(default=30, description="Vendor API request timeout in seconds")
    solarman_api_base_url: str = Field(
        default="https://globalapi.solarmanpv.com",
        description="Solarman OpenAPI base URL (token endpoint)",
    )
    solarman_pro_api_base_url: str | None = Field(
        default=None,
        description="Solarman PRO base URL (derived from solarman_api_base_url if not set)",
    )
    solardm_api_base_url: str = Field(
        default="http://global.solar-dm.com:8010",
        description="SolarDM API base URL",
    )
    token_expiry_buffer_seconds: int = Field(
        default=300,
        description="Re-authenticate when a cached token expires within this many seconds",
    )

    # Sync Configuration
    sync_timezone: str = Field(
        default="Asia/Kolkata",
        description="Timezone used for interval boundaries and the restricted window",
    )
    sync_window_start: str = Field(
        default="19:00",
        description="Start of the window (HH:MM) in which scheduled plant sync is skipped",
    )
    sync_window_end: str = Field(
        default="06:00",
        description="End of the restricted window (HH:MM), exclusive",
    )
    default_sync_interval_minutes: int = Field(
        default=15,
        description="Sync interval for organizations that do not set one",
    )
    plant_batch_size: int = Field(default=100, description="Plants per upsert batch")
    alert_page_size: int = Field(default=100, description="Alerts requested per page")
    alert_lookback_days: int = Field(
        default=365,
        description="Maximum number of days to look back when fetching alerts",
    )
    alert_device_type: str = Field(
        default="INVERTER",
        description="Only alerts raised by this device type are stored",
    )

    # Trigger Configuration
    cron_secret: SecretStr | None = Field(
        default=None,
        description="Bearer secret required by the cron endpoints (open if not set)",
    )
    enable_plant_sync_cron: bool = Field(default=True, description="Enable scheduled plant sync")
    enable_alert_sync_cron: bool = Field(default=True, description="Enable scheduled alert sync")
    scheduler_enabled: bool = Field(
        default=False,
        description="Run the in-process scheduler alongside the web server",
    )
    scheduler_interval_minutes: int = Field(
        default=15,
        description="Minute boundary on which the scheduler triggers the sync jobs",
    )
    scheduler_poll_seconds: float = Field(
        default=20.0,
        description="How often the scheduler wakes up to check the clock",
    )

    # Web Server Configuration
    api_host: str = Field(default="0.0.0.0", description="Host for the HTTP server")
    api_port: int = Field(default=8000, description="Port for the HTTP server")

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["auto", "json", "console"] = Field(
        default="auto",
        description="Log renderer (auto picks console on a TTY, JSON otherwise)",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (logs to console if not set)",
    )
    log_max_bytes: int = Field(
        default=10 * 1024 * 1024,  # 10 MB
        description="Maximum log file size before rotation",
    )
    log_backup_count: int = Field(
        default=5,
        description="Number of backup log files to keep",
    )

    @field_validator("sync_window_start", "sync_window_end")
    @classmethod
    def _validate_clock_time(cls, value: str) -> str:
        match = _CLOCK_RE.match(value.strip())
        if not match or int(match.group(1)) > 23 or int(match.group(2)) > 59:
            raise ValueError(f"expected HH:MM, got {value!r}")
        return value.strip()

    @field_validator("sync_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone {value!r}") from e
        return value

    @field_validator(
        "plant_batch_size",
        "alert_page_size",
        "alert_lookback_days",
        "default_sync_interval_minutes",
        "scheduler_interval_minutes",
    )
    @classmethod
    def _validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("scheduler_poll_seconds")
    @classmethod
    def _validate_poll_seconds(cls, value: float) -> float:
        # The scheduler must wake at least once in every boundary minute
        if not 0 < value <= 60:
            raise ValueError("must be greater than zero and at most 60")
        return value

    def get_cron_secret(self) -> str | None:
        """Return the cron secret, treating an empty value as unset."""
        if self.cron_secret is None:
            return None
        secret = self.cron_secret.get_secret_value().strip()
        return secret or None


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
