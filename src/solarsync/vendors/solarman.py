"""Solarman adapter (OpenAPI token exchange plus the PRO station endpoints)."""

from typing import Any
from urllib.parse import urlsplit

import structlog

from solarsync.db.models.enums import VendorType
from solarsync.utils.exceptions import APIError, AuthenticationError
from solarsync.vendors.base import SupportsAlertSearch, VendorAdapter
from solarsync.vendors.models import CachedToken, PlantLocation, VendorPlant

logger = structlog.get_logger(__name__)

DEFAULT_PRO_BASE_URL = "https://globalpro.solarmanpv.com"
DEFAULT_TOKEN_TTL_SECONDS = 3600
ALERT_QUERY_TIMEZONE = "Asia/Calcutta"


def _scaled(value: Any, divisor: float) -> float | None:
    """Divide a vendor number, treating missing and zero as unknown."""
    if not value:
        return None
    try:
        return float(value) / divisor
    except (TypeError, ValueError):
        return None


def _performance_ratio(station: dict[str, Any]) -> float | None:
    if station.get("prYesterday") is not None:
        return float(station["prYesterday"])
    capacity = station.get("installedCapacity") or 0
    generation_capacity = station.get("generationCapacity")
    if generation_capacity is not None and capacity > 0:
        return float(generation_capacity) / float(capacity)
    return None


def map_station(station: dict[str, Any]) -> VendorPlant:
    """Map a PRO ``station`` object to a :class:`VendorPlant`.

    Power arrives in W and energy in kWh; they are stored as kW and MWh.
    """
    station_id = station["id"]
    address = station.get("locationAddress") or None

    location = None
    if station.get("locationLat") or station.get("locationLng") or address:
        location = PlantLocation(
            lat=station.get("locationLat"),
            lng=station.get("locationLng"),
            address=address,
        )

    network_status = station.get("networkStatus")
    return VendorPlant(
        id=str(station_id),
        name=station.get("name") or f"Station {station_id}",
        capacity_kw=station.get("installedCapacity") or 0,
        location=location,
        current_power_kw=_scaled(station.get("generationPower"), 1000),
        daily_energy_mwh=_scaled(station.get("generationValue"), 1000),
        monthly_energy_mwh=_scaled(station.get("generationMonth"), 1000),
        yearly_energy_mwh=_scaled(station.get("generationYear"), 1000),
        total_energy_mwh=_scaled(station.get("generationTotal"), 1000),
        performance_ratio=_performance_ratio(station),
        network_status=str(network_status).strip() if network_status else None,
        contact_phone=station.get("contactPhone") or None,
        location_address=address,
        last_update_time=station.get("lastUpdateTime") or None,
        created_date=station.get("createdDate") or None,
        start_operating_time=station.get("startOperatingTime") or None,
    )


class SolarmanAdapter(VendorAdapter, SupportsAlertSearch):
    """Adapter for Solarman accounts.

    Credentials: ``appId``, ``appSecret``, ``username``, ``password`` (or
    ``passwordSha256``) and optionally ``solarmanOrgId``/``orgId`` for an
    organization-scoped login.
    """

    vendor_type = VendorType.SOLARMAN

    def get_api_base_url(self) -> str:
        return (self.config.api_base_url or self.settings.solarman_api_base_url).rstrip("/")

    def get_auth_base_url(self) -> str:
        """Scheme and host of the OpenAPI domain, where tokens are issued."""
        base_url = self.get_api_base_url().replace("globalpro", "globalapi")
        parts = urlsplit(base_url)
        return f"{parts.scheme}://{parts.netloc}"

    def get_pro_api_base_url(self) -> str:
        """Base URL of the PRO (maintain-s) endpoints."""
        if self.settings.solarman_pro_api_base_url:
            return self.settings.solarman_pro_api_base_url.rstrip("/")
        base_url = self.get_api_base_url()
        if "globalapi" in base_url:
            return base_url.replace("globalapi", "globalpro")
        if "globalpro" in base_url:
            return base_url
        return DEFAULT_PRO_BASE_URL

    async def login(self) -> CachedToken:
        credentials = self.get_credentials()
        password = credentials.get("password") or credentials.get("passwordSha256")
        if not password:
            raise AuthenticationError(
                "Solarman authentication failed: password or passwordSha256 is required"
            )

        body: dict[str, Any] = {
            "appSecret": credentials.get("appSecret"),
            "username": credentials.get("username"),
            "password": password,
        }
        org_id = credentials.get("solarmanOrgId") or credentials.get("orgId")
        if org_id:
            body["orgId"] = org_id

        try:
            data = await self.http.request(
                "POST",
                f"{self.get_auth_base_url()}/account/v1.0/token",
                operation="AUTHENTICATE",
                params={"appId": credentials.get("appId")},
                json=body,
            )
        except APIError as e:
            raise AuthenticationError(f"Solarman authentication failed: {e}", e.status_code) from e

        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            message = data.get("msg") if isinstance(data, dict) else None
            raise AuthenticationError(
                f"Solarman authentication failed: {message or 'no access token in response'}"
            )

        return CachedToken.from_expires_in(
            access_token,
            data.get("expires_in") or DEFAULT_TOKEN_TTL_SECONDS,
            refresh_token=data.get("refresh_token"),
        )

    async def list_plants(self) -> list[VendorPlant]:
        data = await self.authorized_request(
            "POST",
            f"{self.get_pro_api_base_url()}/maintain-s/operating/station/v2/search",
            operation="LIST_PLANTS",
            json={"station": {"powerTypeList": ["PV"]}},
        )

        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise APIError("Invalid response from Solarman PRO API: expected a data array")

        stations = [item["station"] for item in items if isinstance(item, dict) and item.get("station")]
        logger.info(
            "Fetched Solarman stations",
            vendor_id=self.config.id,
            total=data.get("total"),
            stations=len(stations),
        )
        return [map_station(station) for station in stations]

    async def search_alerts(
        self, start_day: str, end_day: str, page: int, size: int
    ) -> list[dict[str, Any]]:
        """Fetch one page of station alerts, oldest first.

        Args:
            start_day: First day (YYYY-MM-DD), inclusive.
            end_day: Last day (YYYY-MM-DD), inclusive.
            page: 1-based page number.
            size: Page size.

        Returns:
            Raw alert objects of the page (empty when exhausted).
        """
        data = await self.authorized_request(
            "POST",
            f"{self.get_pro_api_base_url()}/maintain-s/operating/station/alert",
            operation="SEARCH_ALERTS",
            params={
                "order.direction": "ASC",
                "order.property": "alertTime",
                "size": size,
                "page": page,
            },
            json={
                "alertQueryName": None,
                "language": "en",
                "status": "-1",
                "timeZone": ALERT_QUERY_TIMEZONE,
                "deviceId": None,
                "endDay": end_day,
                "plantIdList": None,
                "groupIdList": None,
                "startDay": start_day,
            },
        )
        alerts = data.get("data") if isinstance(data, dict) else None
        return alerts if isinstance(alerts, list) else []
