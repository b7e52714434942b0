"""Shared test fixtures."""

import base64
import json
from typing import Any

import pytest

from solarsync.config.settings import Settings
from solarsync.db.engine import create_engine, create_tables, drop_tables, get_session
from solarsync.db.models import Organization, Plant, Vendor, VendorType
from solarsync.utils.exceptions import AuthenticationError
from solarsync.vendors.base import (
    SupportsAlertSearch,
    SupportsDailyTelemetry,
    SupportsMonthlyTelemetry,
    VendorAdapter,
)
from solarsync.vendors.models import (
    CachedToken,
    TelemetryRecord,
    TelemetryRecords,
    TelemetryStatistics,
    VendorPlant,
)
from solarsync.vendors.registry import VendorRegistry


class FakeVendorApi:
    """In-memory stand-in for the vendor APIs, keyed by vendor id."""

    def __init__(self) -> None:
        self.plants: dict[int, list[VendorPlant]] = {}
        self.alerts: dict[int, list[dict[str, Any]]] = {}
        self.fail_login: set[int] = set()
        self.list_errors: dict[int, Exception] = {}
        self.logins: list[int] = []
        self.alert_calls: list[tuple[int, str, str, int, int]] = []
        self.telemetry_calls: list[tuple[Any, ...]] = []


def build_fake_registry(api: FakeVendorApi) -> VendorRegistry:
    """Registry whose SOLARMAN and SOLARDM adapters are backed by ``api``."""

    class FakeAdapterMixin:
        async def login(self) -> CachedToken:
            api.logins.append(self.config.id)
            if self.config.id in api.fail_login:
                raise AuthenticationError("invalid credentials")
            return CachedToken.from_expires_in(f"token-{self.config.id}", 3600)

        async def list_plants(self) -> list[VendorPlant]:
            await self.authenticate()
            if self.config.id in api.list_errors:
                raise api.list_errors[self.config.id]
            return list(api.plants.get(self.config.id, []))

    class FakeSolarmanAdapter(FakeAdapterMixin, VendorAdapter, SupportsAlertSearch):
        vendor_type = VendorType.SOLARMAN

        async def search_alerts(
            self, start_day: str, end_day: str, page: int, size: int
        ) -> list[dict[str, Any]]:
            api.alert_calls.append((self.config.id, start_day, end_day, page, size))
            alerts = api.alerts.get(self.config.id, [])
            return alerts[(page - 1) * size : page * size]

    class FakeSolarDmAdapter(
        FakeAdapterMixin, VendorAdapter, SupportsDailyTelemetry, SupportsMonthlyTelemetry
    ):
        vendor_type = VendorType.SOLARDM

        async def get_daily_telemetry_records(
            self, plant_id: str, year: int, month: int, day: int
        ) -> TelemetryRecords:
            api.telemetry_calls.append(("day", plant_id, year, month, day))
            return TelemetryRecords(
                statistics=TelemetryStatistics(
                    system_id=plant_id, year=year, month=month, day=day, generation_value_kwh=1.5
                ),
                records=[
                    TelemetryRecord(system_id=plant_id, timestamp=1700000000, generation_power_w=2500.0)
                ],
            )

        async def get_monthly_telemetry_records(
            self, plant_id: str, year: int, month: int
        ) -> TelemetryRecords:
            api.telemetry_calls.append(("month", plant_id, year, month))
            return TelemetryRecords(
                statistics=TelemetryStatistics(
                    system_id=plant_id, year=year, month=month, generation_value_kwh=42.0
                ),
                records=[
                    TelemetryRecord(
                        system_id=plant_id, year=year, month=month, day=1, generation_value_kwh=42.0
                    )
                ],
            )

    registry = VendorRegistry()
    registry.register(VendorType.SOLARMAN, FakeSolarmanAdapter)
    registry.register(VendorType.SOLARDM, FakeSolarDmAdapter)
    return registry


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with in-memory SQLite."""
    return Settings(
        database_url="sqlite:///:memory:",
        log_level="INFO",
        cron_secret=None,
        plant_batch_size=2,
        alert_page_size=2,
    )


@pytest.fixture
def test_engine(test_settings):
    """Create test database engine with tables."""
    engine = create_engine(test_settings)
    create_tables(engine)
    yield engine
    drop_tables(engine)
    engine.dispose()


@pytest.fixture
def test_session(test_engine):
    """Create test database session."""
    with get_session(test_engine) as session:
        yield session


@pytest.fixture
def fake_api() -> FakeVendorApi:
    return FakeVendorApi()


@pytest.fixture
def fake_registry(fake_api) -> VendorRegistry:
    return build_fake_registry(fake_api)


@pytest.fixture
def make_org(test_engine):
    """Factory that commits an organization and returns it detached."""

    def _make(**kwargs: Any) -> Organization:
        data = {"name": "Acme Solar", "auto_sync_enabled": True, "sync_interval_minutes": 15}
        data.update(kwargs)
        with get_session(test_engine) as session:
            org = Organization(**data)
            session.add(org)
            session.flush()
        return org

    return _make


@pytest.fixture
def make_vendor(test_engine):
    """Factory that commits a vendor and returns it detached."""

    def _make(
        org: Organization | None = None,
        vendor_type: VendorType = VendorType.SOLARMAN,
        **kwargs: Any,
    ) -> Vendor:
        data = {
            "name": f"{vendor_type.value.title()} Account",
            "vendor_type": vendor_type,
            "credentials": {"appId": "app", "appSecret": "secret", "username": "u", "password": "p"},
            "is_active": True,
            "org_id": org.id if org else None,
        }
        data.update(kwargs)
        with get_session(test_engine) as session:
            vendor = Vendor(**data)
            session.add(vendor)
            session.flush()
        return vendor

    return _make


@pytest.fixture
def make_plant(test_engine):
    """Factory that commits a plant and returns it detached."""

    def _make(vendor: Vendor, vendor_plant_id: str, **kwargs: Any) -> Plant:
        data = {
            "org_id": vendor.org_id,
            "vendor_id": vendor.id,
            "vendor_plant_id": vendor_plant_id,
            "name": f"Plant {vendor_plant_id}",
            "capacity_kw": 10.0,
        }
        data.update(kwargs)
        with get_session(test_engine) as session:
            plant = Plant(**data)
            session.add(plant)
            session.flush()
        return plant

    return _make


def encode_session(account_type: str = "SUPERADMIN", account_id: int = 1, org_id: int | None = None) -> str:
    """Build a session cookie value."""
    payload = {"accountId": account_id, "accountType": account_type, "orgId": org_id}
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def vendor_plant(plant_id: str, **kwargs: Any) -> VendorPlant:
    """Build a VendorPlant with sensible defaults."""
    data: dict[str, Any] = {"id": plant_id, "name": f"Station {plant_id}", "capacity_kw": 5.0}
    data.update(kwargs)
    return VendorPlant(**data)
