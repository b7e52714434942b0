"""SolarDM adapter."""

import time
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import structlog

from solarsync.db.models.enums import VendorType
from solarsync.utils.exceptions import APIError, AuthenticationError
from solarsync.vendors.base import (
    SupportsDailyTelemetry,
    SupportsMonthlyTelemetry,
    SupportsTotalTelemetry,
    SupportsYearlyTelemetry,
    VendorAdapter,
)
from solarsync.vendors.models import (
    CachedToken,
    PlantLocation,
    TelemetryRecord,
    TelemetryRecords,
    TelemetryStatistics,
    VendorPlant,
)

logger = structlog.get_logger(__name__)

# Daily series are sampled every 20 minutes
SAMPLE_INTERVAL_HOURS = 20 / 60

NETWORK_STATUS = {
    1: "NORMAL",
    2: "ALL_OFFLINE",
    3: "PARTIAL_OFFLINE",
}

_ACCEPT = "application/json, text/plain, */*"
_VENDOR_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_vendor_time(value: str | None, tz: ZoneInfo) -> datetime | None:
    """Parse ``YYYY-MM-DD HH:mm:ss`` in the given zone."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), _VENDOR_TIME_FORMAT).replace(tzinfo=tz)
    except ValueError:
        logger.warning("Unparseable SolarDM time", value=value)
        return None


def _int_or_zero(value: Any) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def map_plant(plant: dict[str, Any], tz: ZoneInfo) -> VendorPlant:
    """Map a ``/dms/plant/list_all`` entry to a :class:`VendorPlant`."""
    try:
        capacity = float(plant.get("capacity") or 0)
    except (TypeError, ValueError):
        capacity = 0.0

    address = plant.get("address") or None
    location = None
    if plant.get("latitude") or plant.get("longitude") or address:
        location = PlantLocation(
            lat=plant.get("latitude") or None,
            lng=plant.get("longitude") or None,
            address=address,
        )

    created = parse_vendor_time(plant.get("createTime"), tz)
    return VendorPlant(
        id=str(plant["id"]),
        name=plant.get("plantName") or f"Plant {plant['id']}",
        capacity_kw=capacity,
        location=location,
        network_status=NETWORK_STATUS.get(plant.get("communicateStatus")),
        location_address=address,
        created_date=created,
        start_operating_time=created,
    )


class SolarDmAdapter(
    VendorAdapter,
    SupportsDailyTelemetry,
    SupportsMonthlyTelemetry,
    SupportsYearlyTelemetry,
    SupportsTotalTelemetry,
):
    """Adapter for SolarDM accounts.

    Credentials: ``email`` and ``passwordRSA`` (the RSA-encrypted password
    the SolarDM web client sends).
    """

    vendor_type = VendorType.SOLARDM

    @property
    def vendor_tz(self) -> ZoneInfo:
        return ZoneInfo(self.settings.sync_timezone)

    def get_api_base_url(self) -> str:
        return (self.config.api_base_url or self.settings.solardm_api_base_url).rstrip("/")

    def _unwrap(self, data: Any, key: str, operation: str) -> Any:
        """Return ``data.data[key]`` of a ``{code, message, data}`` envelope."""
        if not isinstance(data, dict) or data.get("code") != 0:
            message = data.get("message") if isinstance(data, dict) else None
            raise APIError(f"SolarDM {operation} error: {message or 'Unknown error'}")
        payload = data.get("data") or {}
        if payload.get(key) is None:
            raise APIError(f"SolarDM {operation} error: response has no {key}")
        return payload[key]

    async def login(self) -> CachedToken:
        credentials = self.get_credentials()
        email = credentials.get("email")
        password = credentials.get("passwordRSA")
        if not email or not password:
            raise AuthenticationError(
                "SolarDM credentials missing: email and passwordRSA are required"
            )

        try:
            data = await self.http.request(
                "POST",
                f"{self.get_api_base_url()}/ums/business/email_login",
                operation="AUTHENTICATE",
                headers={"Accept": _ACCEPT},
                json={
                    "email": email,
                    "password": password,
                    "loginType": "email",
                    "regionSign": "3",
                },
            )
        except APIError as e:
            raise AuthenticationError(f"SolarDM authentication failed: {e}", e.status_code) from e

        if not isinstance(data, dict):
            raise AuthenticationError("SolarDM authentication failed: unexpected response")
        payload = data.get("data") or {}
        if data.get("code") != 0 or not payload.get("token"):
            raise AuthenticationError(
                f"SolarDM authentication failed: {data.get('message') or 'Unknown error'}"
            )

        return CachedToken.from_expires_in(
            payload["token"],
            payload.get("expiresIn"),
            refresh_token=payload.get("refreshToken"),
        )

    async def list_plants(self) -> list[VendorPlant]:
        data = await self.authorized_request(
            "GET",
            f"{self.get_api_base_url()}/dms/plant/list_all",
            operation="LIST_PLANTS",
            headers={"Accept": _ACCEPT},
        )
        plants = self._unwrap(data, "list", "LIST_PLANTS")
        logger.info(
            "Fetched SolarDM plants",
            vendor_id=self.config.id,
            total=(data.get("data") or {}).get("total"),
            plants=len(plants),
        )
        tz = self.vendor_tz
        return [map_plant(plant, tz) for plant in plants]

    async def _history(self, period: str, plant_id: str, kind: str, when: str) -> list[dict[str, Any]]:
        data = await self.authorized_request(
            "GET",
            f"{self.get_api_base_url()}/dms/data_panel/history/stats/{period}/{plant_id}",
            operation=f"TELEMETRY_{period.upper()}",
            headers={"Accept": _ACCEPT},
            params={"plantId": plant_id, "type": kind, "time": when},
        )
        return self._unwrap(data, "dataList", f"TELEMETRY_{period.upper()}")

    async def get_daily_telemetry_records(
        self, plant_id: str, year: int, month: int, day: int
    ) -> TelemetryRecords:
        """Power samples of one day; daily energy is integrated from them."""
        date_str = f"{year}-{month:02d}-{day:02d}"
        items = await self._history("daily", plant_id, "date", date_str)

        tz = self.vendor_tz
        records = []
        for item in items:
            moment = parse_vendor_time(item.get("time"), tz)
            records.append(
                TelemetryRecord(
                    system_id=plant_id,
                    timestamp=int(moment.timestamp()) if moment else int(time.time()),
                    generation_power_w=float(item.get("generationPower") or 0),
                )
            )

        generation_kwh = sum(r.generation_power_w / 1000 * SAMPLE_INTERVAL_HOURS for r in records)
        return TelemetryRecords(
            statistics=TelemetryStatistics(
                system_id=plant_id, year=year, month=month, day=day,
                generation_value_kwh=generation_kwh,
            ),
            records=records,
        )

    async def get_monthly_telemetry_records(
        self, plant_id: str, year: int, month: int
    ) -> TelemetryRecords:
        items = await self._history("month", plant_id, "month", f"{year}-{month:02d}")
        records = [
            TelemetryRecord(
                system_id=plant_id,
                year=year,
                month=month,
                day=_int_or_zero(item.get("time")),
                generation_value_kwh=float(item.get("generationEnergy") or 0),
            )
            for item in items
        ]
        return TelemetryRecords(
            statistics=TelemetryStatistics(
                system_id=plant_id, year=year, month=month,
                generation_value_kwh=sum(r.generation_value_kwh or 0 for r in records),
            ),
            records=records,
        )

    async def get_yearly_telemetry_records(self, plant_id: str, year: int) -> TelemetryRecords:
        items = await self._history("year", plant_id, "year", str(year))
        records = [
            TelemetryRecord(
                system_id=plant_id,
                year=year,
                month=_int_or_zero(item.get("time")),
                generation_value_kwh=float(item.get("generationEnergy") or 0),
            )
            for item in items
        ]
        return TelemetryRecords(
            statistics=TelemetryStatistics(
                system_id=plant_id, year=year,
                generation_value_kwh=sum(r.generation_value_kwh or 0 for r in records),
            ),
            records=records,
        )

    async def get_total_telemetry_records(
        self, plant_id: str, start_year: int, end_year: int
    ) -> TelemetryRecords:
        # The vendor expects the literal "YYYY ~ YYYY" range
        items = await self._history("total", plant_id, "all", f"{start_year} ~ {end_year}")
        records = [
            TelemetryRecord(
                system_id=plant_id,
                year=_int_or_zero(item.get("time")),
                generation_value_kwh=float(item.get("generationEnergy") or 0),
            )
            for item in items
        ]
        return TelemetryRecords(
            statistics=TelemetryStatistics(
                system_id=plant_id,
                generation_value_kwh=sum(r.generation_value_kwh or 0 for r in records),
            ),
            records=records,
        )
