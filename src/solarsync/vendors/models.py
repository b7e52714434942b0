"""Pydantic models exchanged between vendor adapters and the sync services."""

from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from solarsync.db.models.enums import VendorType


class VendorConfig(BaseModel):
    """Snapshot of a vendor row handed to an adapter."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    vendor_type: VendorType
    credentials: dict[str, Any] = Field(default_factory=dict)
    api_base_url: str | None = None
    is_active: bool = True
    org_id: int | None = None


class PlantLocation(BaseModel):
    lat: float | None = None
    lng: float | None = None
    address: str | None = None


class VendorPlant(BaseModel):
    """A plant as listed by a vendor, before persistence mapping.

    Timestamps are left as the vendor sent them (Unix seconds, ISO strings
    or datetimes) and coerced by the plant sync normalizer.
    """

    id: str
    name: str | None = None
    capacity_kw: float | None = None
    location: PlantLocation | None = None

    current_power_kw: float | None = None
    daily_energy_mwh: float | None = None
    monthly_energy_mwh: float | None = None
    yearly_energy_mwh: float | None = None
    total_energy_mwh: float | None = None
    performance_ratio: float | None = None

    network_status: str | None = None
    contact_phone: str | None = None
    location_address: str | None = None
    last_update_time: float | str | datetime | None = None
    created_date: float | str | datetime | None = None
    start_operating_time: float | str | datetime | None = None


class CachedToken(BaseModel):
    """Access token with its expiry, as persisted in vendor credentials."""

    access_token: str
    expires_at: datetime | None = None
    refresh_token: str | None = None

    @classmethod
    def from_expires_in(
        cls,
        access_token: str,
        expires_in: int | float | str | None,
        refresh_token: str | None = None,
        now: datetime | None = None,
    ) -> "CachedToken":
        # Solarman sends expires_in as a string
        issued = now or datetime.now(timezone.utc)
        expires_at = issued + timedelta(seconds=float(expires_in)) if expires_in else None
        return cls(access_token=access_token, expires_at=expires_at, refresh_token=refresh_token)


class TelemetryRecord(BaseModel):
    """One point of a telemetry series.

    Daily series carry instantaneous power in W, aggregated series carry
    energy per bucket in kWh.
    """

    system_id: str
    timestamp: int | None = None
    generation_power_w: float | None = None
    year: int | None = None
    month: int | None = None
    day: int | None = None
    generation_value_kwh: float | None = None


class TelemetryStatistics(BaseModel):
    system_id: str
    year: int | None = None
    month: int | None = None
    day: int | None = None
    generation_value_kwh: float = 0.0


class TelemetryRecords(BaseModel):
    statistics: TelemetryStatistics
    records: list[TelemetryRecord] = Field(default_factory=list)
