"""Tests for the alert sync service and its mapping helpers."""

from datetime import datetime, timezone

import pytest

from solarsync.db.engine import get_session
from solarsync.db.models import AlertSeverity, AlertStatus, Vendor, VendorType
from solarsync.db.repositories import AlertRepository
from solarsync.sync.alerts import (
    AlertSyncService,
    build_alert_payload,
    grid_down_seconds,
    map_alert_status,
    map_solarman_severity,
    resolve_alerts_start_date,
)
from solarsync.sync.base import AUTH_FAILED_MESSAGE
from solarsync.utils.exceptions import VendorNotFoundError

NOW = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)


def raw_alert(alert_id, station_id, **kwargs) -> dict:
    data = {
        "id": alert_id,
        "stationId": station_id,
        "deviceType": "INVERTER",
        "alertName": "Grid overvoltage",
        "level": 2,
        "influence": 0,
        "alertTime": 1717200000,
        "endTime": None,
    }
    data.update(kwargs)
    return data


class TestSeverityMapping:
    """Test map_solarman_severity."""

    @pytest.mark.parametrize(
        "level,influence,expected",
        [
            (0, None, AlertSeverity.LOW),
            (1, 0, AlertSeverity.MEDIUM),
            (2, 0, AlertSeverity.HIGH),
            (None, None, AlertSeverity.MEDIUM),
            (9, None, AlertSeverity.MEDIUM),
            (0, 1, AlertSeverity.MEDIUM),
            (2, 1, AlertSeverity.HIGH),
            (0, 2, AlertSeverity.CRITICAL),
            (1, 3, AlertSeverity.CRITICAL),
        ],
    )
    def test_mapping(self, level, influence, expected):
        assert map_solarman_severity(level, influence) == expected


class TestAlertHelpers:
    """Test the alert field helpers."""

    def test_status_from_end_time(self):
        assert map_alert_status(None) == AlertStatus.ACTIVE
        assert map_alert_status(0) == AlertStatus.ACTIVE
        assert map_alert_status(1717203600) == AlertStatus.RESOLVED

    def test_grid_down_seconds(self):
        start = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)
        end = datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)

        assert grid_down_seconds(start, end) == 5400
        assert grid_down_seconds(end, start) == 0
        assert grid_down_seconds(start, None) is None

    def test_start_date_defaults_to_lookback(self):
        assert resolve_alerts_start_date(None, NOW).date().isoformat() == "2023-06-02"

    def test_start_date_configured(self):
        assert resolve_alerts_start_date("2024-03-01", NOW).date().isoformat() == "2024-03-01"

    def test_start_date_clamped_to_lookback(self):
        assert resolve_alerts_start_date("2020-01-01", NOW).date().isoformat() == "2023-06-02"

    def test_start_date_invalid(self):
        assert resolve_alerts_start_date("yesterday", NOW, lookback_days=30).date().isoformat() == "2024-05-02"


class TestBuildAlertPayload:
    """Test build_alert_payload."""

    station_map = {1001: (5, "1001")}

    def test_maps_fields(self):
        payload = build_alert_payload(
            raw_alert(77, "1001", endTime=1717203600), vendor_id=3, station_map=self.station_map
        )

        assert payload["vendor_id"] == 3
        assert payload["plant_id"] == 5
        assert payload["vendor_plant_id"] == "1001"
        assert payload["vendor_alert_id"] == "77"
        assert payload["station_id"] == 1001
        assert payload["status"] == AlertStatus.RESOLVED
        assert payload["severity"] == AlertSeverity.HIGH
        assert payload["grid_down_seconds"] == 3600
        assert payload["vendor_metadata"]["id"] == 77

    def test_other_device_types_skipped(self):
        assert build_alert_payload(raw_alert(1, 1001, deviceType="METER"), 3, self.station_map) is None

    def test_unknown_station_skipped(self):
        assert build_alert_payload(raw_alert(1, 9999), 3, self.station_map) is None

    def test_missing_title_defaults(self):
        payload = build_alert_payload(raw_alert(1, 1001, alertName=None), 3, self.station_map)
        assert payload["title"] == "Alert"


class TestAlertSyncService:
    """Test AlertSyncService."""

    @pytest.fixture
    def service(self, test_engine, test_settings, fake_registry) -> AlertSyncService:
        return AlertSyncService(test_engine, test_settings, fake_registry)

    @pytest.fixture
    def vendor_with_plant(self, make_org, make_vendor, make_plant):
        vendor = make_vendor(make_org())
        plant = make_plant(vendor, "1001")
        return vendor, plant

    def alerts_for(self, engine, plant_id):
        with get_session(engine) as session:
            return AlertRepository(session).get_by_plant(plant_id)

    @pytest.mark.asyncio
    async def test_sync_all_pages_through_alerts(self, service, test_engine, fake_api, vendor_with_plant):
        """Test every page is fetched until a short page comes back."""
        vendor, plant = vendor_with_plant
        fake_api.alerts[vendor.id] = [raw_alert(i, 1001) for i in range(1, 4)]

        summary = await service.sync_all(now=NOW)

        assert summary.total_alerts_synced == 3
        assert summary.total_alerts_created == 3
        assert [call[3] for call in fake_api.alert_calls] == [1, 2]
        assert len(self.alerts_for(test_engine, plant.id)) == 3

        with get_session(test_engine) as session:
            assert session.get(Vendor, vendor.id).last_alert_synced_at is not None

    @pytest.mark.asyncio
    async def test_full_last_page_requests_another(self, service, fake_api, vendor_with_plant):
        vendor, _ = vendor_with_plant
        fake_api.alerts[vendor.id] = [raw_alert(i, 1001) for i in range(1, 5)]

        await service.sync_all(now=NOW)

        assert [call[3] for call in fake_api.alert_calls] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_resync_updates_alerts(self, service, test_engine, fake_api, vendor_with_plant):
        """Test an alert seen again is updated, e.g. when it resolves."""
        vendor, plant = vendor_with_plant
        fake_api.alerts[vendor.id] = [raw_alert(1, 1001)]
        await service.sync_all(now=NOW)

        fake_api.alerts[vendor.id] = [raw_alert(1, 1001, endTime=1717203600)]
        summary = await service.sync_all(now=NOW)

        assert summary.total_alerts_updated == 1
        assert summary.total_alerts_created == 0
        alerts = self.alerts_for(test_engine, plant.id)
        assert len(alerts) == 1
        assert alerts[0].status == AlertStatus.RESOLVED
        assert alerts[0].grid_down_seconds == 3600

    @pytest.mark.asyncio
    async def test_filtered_alerts_not_stored(self, service, test_engine, fake_api, vendor_with_plant):
        vendor, plant = vendor_with_plant
        fake_api.alerts[vendor.id] = [
            raw_alert(1, 1001),
            raw_alert(2, 1001, deviceType="COLLECTOR"),
            raw_alert(3, 5555),
        ]

        summary = await service.sync_all(now=NOW)

        result = summary.results[0]
        assert result.total == 3
        assert result.synced == 1
        assert len(self.alerts_for(test_engine, plant.id)) == 1

    @pytest.mark.asyncio
    async def test_no_plants_skips_search(self, service, fake_api, make_org, make_vendor):
        """Test a vendor without stored plants succeeds without searching."""
        make_vendor(make_org())

        summary = await service.sync_all(now=NOW)

        assert summary.results[0].success is True
        assert fake_api.alert_calls == []

    @pytest.mark.asyncio
    async def test_alerts_start_date_credential(self, service, fake_api, make_org, make_vendor, make_plant):
        vendor = make_vendor(
            make_org(),
            credentials={"appId": "app", "password": "p", "alertsStartDate": "2024-03-01"},
        )
        make_plant(vendor, "1001")

        await service.sync_all(now=NOW)

        _, start_day, end_day, _, _ = fake_api.alert_calls[0]
        assert start_day == "2024-03-01"
        assert end_day == "2024-06-01"

    @pytest.mark.asyncio
    async def test_naive_now_treated_as_utc(self, service, fake_api, make_org, make_vendor, make_plant):
        """Test a naive current time is compared as UTC against the configured start date."""
        vendor = make_vendor(
            make_org(),
            credentials={"appId": "app", "password": "p", "alertsStartDate": "2024-03-01"},
        )
        make_plant(vendor, "1001")

        summary = await service.sync_all(now=datetime(2024, 6, 1, 12, 0))

        assert summary.results[0].success is True
        _, start_day, end_day, _, _ = fake_api.alert_calls[0]
        assert start_day == "2024-03-01"
        assert end_day == "2024-06-01"

    @pytest.mark.asyncio
    async def test_vendors_without_alert_search_skipped(self, service, make_org, make_vendor):
        org = make_org()
        make_vendor(org, vendor_type=VendorType.SOLARDM)
        make_vendor(org, vendor_type=VendorType.SUNGROW)

        summary = await service.sync_all(now=NOW)

        assert summary.total_vendors == 0

    @pytest.mark.asyncio
    async def test_auth_failure(self, service, fake_api, vendor_with_plant):
        vendor, _ = vendor_with_plant
        fake_api.fail_login.add(vendor.id)

        summary = await service.sync_all(now=NOW)

        assert summary.results[0].success is False
        assert summary.results[0].error == AUTH_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_sync_vendor_unsupported(self, service, make_org, make_vendor):
        """Test a manual alert sync of a vendor without alert search."""
        vendor = make_vendor(make_org(), vendor_type=VendorType.SOLARDM)

        result = await service.sync_vendor(vendor.id, now=NOW)

        assert result.success is False
        assert result.error == "Alert sync is currently implemented only for SOLARMAN vendors"

    @pytest.mark.asyncio
    async def test_sync_vendor_inactive(self, service, fake_api, make_org, make_vendor):
        vendor = make_vendor(make_org(), is_active=False)

        result = await service.sync_vendor(vendor.id, now=NOW)

        assert result.success is True
        assert fake_api.logins == []

    @pytest.mark.asyncio
    async def test_sync_vendor_not_found(self, service):
        with pytest.raises(VendorNotFoundError):
            await service.sync_vendor(12345)
