"""On-demand plant telemetry lookups through the vendor capability interfaces."""

from datetime import datetime, timezone
from typing import Any, Literal

import structlog
from sqlalchemy import Engine

from solarsync.config.settings import Settings
from solarsync.db.engine import get_session
from solarsync.db.repositories.plant import PlantRepository
from solarsync.sync.base import vendor_config
from solarsync.utils.exceptions import (
    InvalidRequestError,
    NotFoundError,
    UnsupportedCapabilityError,
)
from solarsync.vendors.base import (
    SupportsDailyTelemetry,
    SupportsMonthlyTelemetry,
    SupportsTotalTelemetry,
    SupportsYearlyTelemetry,
)
from solarsync.vendors.models import TelemetryRecords
from solarsync.vendors.registry import VendorRegistry, create_default_registry
from solarsync.vendors.token_store import DatabaseTokenStore

logger = structlog.get_logger(__name__)

TelemetryPeriod = Literal["day", "month", "year", "total"]
PERIODS: tuple[str, ...] = ("day", "month", "year", "total")


def _require(value: int | None, name: str, low: int, high: int) -> int:
    if value is None:
        raise InvalidRequestError(f"Missing {name} parameter")
    if not low <= value <= high:
        raise InvalidRequestError(f"Invalid {name} parameter: {value}")
    return value


def serialize_records(period: str, data: TelemetryRecords) -> dict[str, Any]:
    """Shape telemetry for API output; power is converted from W to kW."""
    records = []
    for record in data.records:
        item: dict[str, Any] = {}
        if record.timestamp is not None:
            item["ts"] = datetime.fromtimestamp(record.timestamp, tz=timezone.utc).isoformat()
        if record.generation_power_w is not None:
            item["power_kw"] = record.generation_power_w / 1000
        for key in ("year", "month", "day"):
            value = getattr(record, key)
            if value:
                item[key] = value
        if record.generation_value_kwh is not None:
            item["generation_value_kwh"] = record.generation_value_kwh
        records.append(item)

    return {
        "period": period,
        "statistics": data.statistics.model_dump(),
        "records": records,
    }


class TelemetryService:
    """Fetches telemetry for a stored plant from its vendor."""

    def __init__(
        self,
        engine: Engine,
        settings: Settings,
        registry: VendorRegistry | None = None,
    ) -> None:
        self.engine = engine
        self.settings = settings
        self.registry = registry or create_default_registry()

    async def get_plant_telemetry(
        self,
        plant_id: int,
        period: str = "day",
        year: int | None = None,
        month: int | None = None,
        day: int | None = None,
        start_year: int | None = None,
        end_year: int | None = None,
    ) -> dict[str, Any]:
        """Fetch telemetry for a plant.

        The vendor is always called with the plant's vendor_plant_id.

        Args:
            plant_id: Internal plant ID.
            period: One of day, month, year, total.
            year: Year (day, month and year periods).
            month: Month (day and month periods).
            day: Day of month (day period).
            start_year: First year (total period).
            end_year: Last year (total period).

        Returns:
            Serialized statistics and records.

        Raises:
            NotFoundError: If the plant does not exist or its vendor is inactive.
            InvalidRequestError: If the period parameters are missing or invalid.
            UnsupportedCapabilityError: If the vendor lacks the requested series.
        """
        if period not in PERIODS:
            raise InvalidRequestError(f"Invalid period: {period}")

        with get_session(self.engine) as session:
            plant = PlantRepository(session).get_by_id(plant_id)
            if plant is None:
                raise NotFoundError(f"Plant not found: {plant_id}")
            vendor = plant.vendor
            if vendor is None or not vendor.is_active:
                raise NotFoundError(f"Vendor for plant {plant_id} is not active")
            config = vendor_config(vendor)
            vendor_plant_id = plant.vendor_plant_id

        adapter = self.registry.create(config, self.settings)
        adapter.set_token_storage(DatabaseTokenStore(self.engine, config.id))
        vendor_type = config.vendor_type.value

        logger.info(
            "Fetching plant telemetry",
            plant_id=plant_id,
            vendor_plant_id=vendor_plant_id,
            vendor_id=config.id,
            period=period,
        )

        async with adapter:
            if period == "day":
                if not isinstance(adapter, SupportsDailyTelemetry):
                    raise UnsupportedCapabilityError(vendor_type, "daily telemetry")
                data = await adapter.get_daily_telemetry_records(
                    vendor_plant_id,
                    _require(year, "year", 1970, 9999),
                    _require(month, "month", 1, 12),
                    _require(day, "day", 1, 31),
                )
            elif period == "month":
                if not isinstance(adapter, SupportsMonthlyTelemetry):
                    raise UnsupportedCapabilityError(vendor_type, "monthly telemetry")
                data = await adapter.get_monthly_telemetry_records(
                    vendor_plant_id,
                    _require(year, "year", 1970, 9999),
                    _require(month, "month", 1, 12),
                )
            elif period == "year":
                if not isinstance(adapter, SupportsYearlyTelemetry):
                    raise UnsupportedCapabilityError(vendor_type, "yearly telemetry")
                data = await adapter.get_yearly_telemetry_records(
                    vendor_plant_id, _require(year, "year", 1970, 9999)
                )
            else:
                if not isinstance(adapter, SupportsTotalTelemetry):
                    raise UnsupportedCapabilityError(vendor_type, "total telemetry")
                first = _require(start_year, "start_year", 1970, 9999)
                last = _require(end_year, "end_year", 1970, 9999)
                if first > last:
                    raise InvalidRequestError("start_year must not be after end_year")
                data = await adapter.get_total_telemetry_records(vendor_plant_id, first, last)

        return serialize_records(period, data)
