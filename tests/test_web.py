"""Tests for the HTTP API."""

import pytest
from conftest import encode_session, vendor_plant
from fastapi.testclient import TestClient

from solarsync.config.settings import Settings
from solarsync.db.models import VendorType
from solarsync.web.app import create_app
from solarsync.web.auth import SESSION_COOKIE, decode_session_cookie, verify_cron_secret


@pytest.fixture
def app(test_settings, test_engine, fake_registry):
    return create_app(test_settings, test_engine, fake_registry)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def admin_client(app) -> TestClient:
    client = TestClient(app)
    client.cookies.set(SESSION_COOKIE, encode_session("SUPERADMIN"))
    return client


@pytest.fixture
def user_client(app) -> TestClient:
    client = TestClient(app)
    client.cookies.set(SESSION_COOKIE, encode_session("ORG_ADMIN", org_id=1))
    return client


class TestAuthHelpers:
    """Test the session and cron secret helpers."""

    def test_decode_session_cookie(self):
        data = decode_session_cookie(encode_session("SUPERADMIN", account_id=7))

        assert data["accountType"] == "SUPERADMIN"
        assert data["accountId"] == 7

    @pytest.mark.parametrize("value", ["%%%", "bm90IGpzb24=", "WzEsIDJd"])
    def test_invalid_session_cookie(self, value):
        with pytest.raises(ValueError):
            decode_session_cookie(value)

    def test_verify_cron_secret(self):
        assert verify_cron_secret(None, None)
        assert verify_cron_secret("Bearer s3cret", "s3cret")
        assert not verify_cron_secret("Bearer wrong", "s3cret")
        assert not verify_cron_secret(None, "s3cret")


class TestCronPlantSync:
    """Test GET /api/cron/sync-plants."""

    def test_runs_due_vendors(self, client, fake_api, make_org, make_vendor):
        """Test an every-minute organization is always due."""
        vendor = make_vendor(make_org(sync_interval_minutes=1))
        fake_api.plants[vendor.id] = [vendor_plant("1001"), vendor_plant("1002")]

        response = client.get("/api/cron/sync-plants")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Plant sync completed"
        assert body["summary"]["totalVendors"] == 1
        assert body["summary"]["totalPlantsCreated"] == 2
        assert body["summary"]["results"][0]["vendorId"] == vendor.id

    def test_vendor_failure_still_200(self, client, fake_api, make_org, make_vendor):
        vendor = make_vendor(make_org(sync_interval_minutes=1))
        fake_api.fail_login.add(vendor.id)

        response = client.get("/api/cron/sync-plants")

        assert response.status_code == 200
        result = response.json()["summary"]["results"][0]
        assert result["success"] is False
        assert result["error"] == "Token validation/refresh failed"

    def test_disabled(self, test_settings, test_engine, fake_registry):
        settings = test_settings.model_copy(update={"enable_plant_sync_cron": False})
        client = TestClient(create_app(settings, test_engine, fake_registry))

        response = client.get("/api/cron/sync-plants")

        assert response.status_code == 200
        assert response.json() == {"success": False, "message": "Plant sync cron is disabled"}

    def test_requires_secret_when_configured(self, test_engine, fake_registry):
        settings = Settings(database_url="sqlite:///:memory:", cron_secret="s3cret")
        client = TestClient(create_app(settings, test_engine, fake_registry))

        assert client.get("/api/cron/sync-plants").status_code == 401
        assert client.get("/api/cron/sync-plants").json() == {"error": "Unauthorized"}
        response = client.get(
            "/api/cron/sync-plants", headers={"Authorization": "Bearer s3cret"}
        )
        assert response.status_code == 200


class TestManualSync:
    """Test the SUPERADMIN-only sync triggers."""

    def test_requires_session(self, client):
        response = client.post("/api/cron/sync-plants")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_invalid_session(self, app):
        client = TestClient(app)
        client.cookies.set(SESSION_COOKIE, "not-base64-json")

        response = client.post("/api/cron/sync-plants")

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid session"}

    def test_requires_superadmin(self, user_client):
        response = user_client.post("/api/cron/sync-plants")

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden - SUPERADMIN only"}

    def test_manual_plant_sync_is_forced(self, admin_client, fake_api, make_org, make_vendor):
        """Test a manual sync ignores the organization's auto-sync setting."""
        vendor = make_vendor(make_org(auto_sync_enabled=False))
        fake_api.plants[vendor.id] = [vendor_plant("1001")]

        response = admin_client.post("/api/cron/sync-plants")

        assert response.status_code == 200
        assert response.json()["summary"]["totalPlantsSynced"] == 1

    def test_manual_alert_sync(self, admin_client, fake_api, make_org, make_vendor, make_plant):
        vendor = make_vendor(make_org())
        make_plant(vendor, "1001")
        fake_api.alerts[vendor.id] = [
            {"id": 1, "stationId": 1001, "deviceType": "INVERTER", "alertName": "Fault", "level": 1}
        ]

        response = admin_client.post("/api/cron/sync-alerts")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Alert sync completed"
        assert body["summary"]["totalAlertsCreated"] == 1

    def test_cron_alert_sync(self, client):
        response = client.get("/api/cron/sync-alerts")

        assert response.status_code == 200
        assert response.json()["summary"]["totalVendors"] == 0


class TestVendorEndpoints:
    """Test the per-vendor endpoints."""

    def test_sync_vendor_plants(self, admin_client, fake_api, make_org, make_vendor):
        vendor = make_vendor(make_org())
        fake_api.plants[vendor.id] = [vendor_plant("1001")]

        response = admin_client.post(f"/api/vendors/{vendor.id}/sync-plants")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["result"]["created"] == 1

    def test_sync_vendor_not_found(self, admin_client):
        response = admin_client.post("/api/vendors/999/sync-plants")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Vendor not found: 999"}

    def test_sync_vendor_without_org(self, admin_client, make_vendor):
        vendor = make_vendor(None)

        response = admin_client.post(f"/api/vendors/{vendor.id}/sync-plants")

        assert response.status_code == 400

    def test_sync_vendor_alerts_unsupported(self, admin_client, make_org, make_vendor):
        vendor = make_vendor(make_org(), vendor_type=VendorType.SOLARDM)

        response = admin_client.post(f"/api/vendors/{vendor.id}/sync-alerts")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert "only for SOLARMAN" in body["result"]["error"]

    def test_sync_status(self, admin_client, make_org, make_vendor):
        org = make_org(name="Acme", sync_interval_minutes=30)
        make_vendor(org, name="Acme Solarman")
        make_vendor(None, name="Loose SolarDM", vendor_type=VendorType.SOLARDM)

        response = admin_client.get("/api/vendors/sync-status")

        assert response.status_code == 200
        vendors = {v["name"]: v for v in response.json()["vendors"]}
        assert vendors["Acme Solarman"]["organization"]["sync_interval_minutes"] == 30
        assert vendors["Acme Solarman"]["last_synced_at"] is None
        assert vendors["Loose SolarDM"]["organization"] is None

    def test_sync_status_requires_superadmin(self, user_client):
        assert user_client.get("/api/vendors/sync-status").status_code == 403


class TestTelemetryEndpoint:
    """Test GET /api/plants/{id}/telemetry."""

    @pytest.fixture
    def plant(self, make_org, make_vendor, make_plant):
        vendor = make_vendor(make_org(), vendor_type=VendorType.SOLARDM, credentials={})
        return make_plant(vendor, "P-1")

    def test_daily(self, user_client, fake_api, plant):
        response = user_client.get(
            f"/api/plants/{plant.id}/telemetry",
            params={"period": "day", "year": "2024", "month": "1", "day": "15"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["plant_id"] == plant.id
        assert body["period"] == "day"
        assert body["records"][0]["power_kw"] == 2.5
        assert fake_api.telemetry_calls == [("day", "P-1", 2024, 1, 15)]

    def test_requires_session(self, client, plant):
        response = client.get(f"/api/plants/{plant.id}/telemetry")
        assert response.status_code == 401

    def test_invalid_date(self, user_client, plant):
        response = user_client.get(
            f"/api/plants/{plant.id}/telemetry", params={"year": "twenty", "month": "1", "day": "1"}
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid date parameters"}

    def test_missing_parameter(self, user_client, plant):
        response = user_client.get(f"/api/plants/{plant.id}/telemetry", params={"year": "2024"})

        assert response.status_code == 400

    def test_unsupported_period(self, user_client, plant):
        response = user_client.get(
            f"/api/plants/{plant.id}/telemetry", params={"period": "year", "year": "2024"}
        )

        assert response.status_code == 501

    def test_plant_not_found(self, user_client):
        response = user_client.get(
            "/api/plants/999/telemetry", params={"year": "2024", "month": "1", "day": "1"}
        )

        assert response.status_code == 404


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
