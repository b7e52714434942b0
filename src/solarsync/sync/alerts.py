"""Alert synchronization: paged vendor alert search upserted into the alerts table."""

import math
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from solarsync.db.engine import get_session
from solarsync.db.models.enums import AlertSeverity, AlertStatus
from solarsync.db.repositories.alert import AlertRepository
from solarsync.db.repositories.plant import PlantRepository
from solarsync.db.repositories.vendor import VendorRepository
from solarsync.sync.base import AUTH_FAILED_MESSAGE, BaseSyncService, SyncTarget, elapsed_ms
from solarsync.sync.context import SyncContext
from solarsync.sync.results import AlertSyncSummary, VendorSyncResult
from solarsync.utils.exceptions import APIError
from solarsync.vendors.base import SupportsAlertSearch

logger = structlog.get_logger(__name__)

_LEVEL_SEVERITY = {
    0: AlertSeverity.LOW,
    1: AlertSeverity.MEDIUM,
    2: AlertSeverity.HIGH,
}


def map_solarman_severity(level: int | None, influence: int | None) -> AlertSeverity:
    """Map a Solarman alert level and safety influence to a severity.

    Level 0/1/2 maps to LOW/MEDIUM/HIGH (MEDIUM when missing). Influence 2
    or 3 makes the alert CRITICAL and influence 1 lifts LOW to MEDIUM.
    """
    severity = _LEVEL_SEVERITY.get(1 if level is None else level, AlertSeverity.MEDIUM)
    if influence in (2, 3):
        return AlertSeverity.CRITICAL
    if influence == 1 and severity == AlertSeverity.LOW:
        return AlertSeverity.MEDIUM
    return severity


def map_alert_status(end_time: Any) -> AlertStatus:
    """An alert with no end time is still active."""
    return AlertStatus.RESOLVED if end_time else AlertStatus.ACTIVE


def from_unix_seconds(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(seconds):
        return None
    return datetime.fromtimestamp(math.floor(seconds), tz=timezone.utc)


def grid_down_seconds(alert_time: datetime | None, end_time: datetime | None) -> int | None:
    """Outage length in whole seconds, never negative; None while unresolved."""
    if alert_time is None or end_time is None:
        return None
    return max(0, math.floor((end_time - alert_time).total_seconds()))


def resolve_alerts_start_date(
    configured: Any, now: datetime, lookback_days: int = 365
) -> datetime:
    """Start of the alert lookback window.

    Args:
        configured: The vendor's ``alertsStartDate`` credential, if any.
        now: Current time.
        lookback_days: Hard limit on how far back to look.

    Returns:
        The configured date, clamped to at most ``lookback_days`` ago. Missing
        or invalid values fall back to the limit.
    """
    fallback = now - timedelta(days=lookback_days)
    if not configured:
        return fallback

    try:
        if isinstance(configured, datetime):
            parsed = configured
        elif isinstance(configured, date):
            parsed = datetime(configured.year, configured.month, configured.day)
        else:
            parsed = datetime.fromisoformat(str(configured).strip().replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Invalid alertsStartDate, using lookback limit", value=configured)
        return fallback

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return max(parsed, fallback)


def build_alert_payload(
    raw: dict[str, Any],
    vendor_id: int,
    station_map: dict[int, tuple[int, str]],
    device_type: str = "INVERTER",
) -> dict[str, Any] | None:
    """Map a raw Solarman station alert to an alerts row.

    Args:
        raw: Alert object from the vendor.
        vendor_id: Owning vendor.
        station_map: Station id to (plant id, vendor_plant_id).
        device_type: Only alerts from this device type are kept.

    Returns:
        Row attributes, or None if the alert is filtered out or unmapped.
    """
    if raw.get("deviceType") != device_type:
        return None
    try:
        station_id = int(raw.get("stationId"))
    except (TypeError, ValueError):
        return None
    mapping = station_map.get(station_id)
    if mapping is None or raw.get("id") is None:
        return None

    plant_id, vendor_plant_id = mapping
    alert_time = from_unix_seconds(raw.get("alertTime"))
    end_time = from_unix_seconds(raw.get("endTime"))

    return {
        "vendor_id": vendor_id,
        "plant_id": plant_id,
        "vendor_plant_id": vendor_plant_id,
        "vendor_alert_id": str(raw["id"]),
        "title": raw.get("alertName") or "Alert",
        "description": None,
        "severity": map_solarman_severity(raw.get("level"), raw.get("influence")),
        "status": map_alert_status(raw.get("endTime")),
        "station_id": station_id,
        "device_type": raw.get("deviceType"),
        "alert_time": alert_time,
        "end_time": end_time,
        "grid_down_seconds": grid_down_seconds(alert_time, end_time),
        "vendor_metadata": raw,
    }


class AlertSyncService(BaseSyncService):
    """Pulls alerts from vendors that support alert search."""

    operation = "sync-alerts"

    def supports_alerts(self, target: SyncTarget) -> bool:
        vendor_type = target.vendor.vendor_type
        return self.registry.is_supported(vendor_type) and issubclass(
            self.registry.adapter_class(vendor_type), SupportsAlertSearch
        )

    def alert_vendor_types(self) -> list[str]:
        return [
            t for t in self.registry.supported_types()
            if issubclass(self.registry.adapter_class(t), SupportsAlertSearch)
        ]

    async def sync_all(
        self, context: SyncContext | None = None, now: datetime | None = None
    ) -> AlertSyncSummary:
        """Sync alerts for every active vendor whose adapter supports it.

        Args:
            context: Trigger context (a system context if not given).
            now: Current time, for tests.

        Returns:
            Summary across vendors.
        """
        context = context or SyncContext(operation=self.operation)
        log = context.bind(logger)
        start = time.monotonic()

        targets = []
        for target in self.load_active_targets():
            if self.supports_alerts(target):
                targets.append(target)
            else:
                log.debug(
                    "Skipping vendor without alert support",
                    vendor_id=target.vendor.id,
                    vendor_type=target.vendor.vendor_type.value,
                )

        log.info("Starting alert sync", vendors=len(targets))

        async def worker(target: SyncTarget, vendor_context: SyncContext) -> VendorSyncResult:
            return await self.sync_target(target, vendor_context, now=now)

        results = await self.run_targets(targets, context, worker)
        summary = AlertSyncSummary.from_results(results, elapsed_ms(start))

        log.info(
            "Alert sync complete",
            vendors=summary.total_vendors,
            successful=summary.successful,
            failed=summary.failed,
            synced=summary.total_alerts_synced,
            created=summary.total_alerts_created,
            updated=summary.total_alerts_updated,
            duration_ms=summary.duration_ms,
        )
        return summary

    async def sync_vendor(
        self,
        vendor_id: int,
        context: SyncContext | None = None,
        now: datetime | None = None,
    ) -> VendorSyncResult:
        """Manually sync alerts for one vendor.

        Raises:
            VendorNotFoundError: If the vendor does not exist.
        """
        context = context or SyncContext(operation=self.operation)
        target = self.load_target(vendor_id)
        log = self.vendor_context(context, target).bind(logger)

        if not target.vendor.is_active:
            log.info("Vendor is inactive, nothing to sync")
            result = self.new_result(target)
            result.success = True
            return result

        if not self.supports_alerts(target):
            result = self.new_result(target)
            result.error = (
                "Alert sync is currently implemented only for "
                f"{', '.join(self.alert_vendor_types()) or 'no'} vendors"
            )
            return result

        async def worker(target: SyncTarget, vendor_context: SyncContext) -> VendorSyncResult:
            return await self.sync_target(target, vendor_context, now=now)

        return (await self.run_targets([target], context, worker))[0]

    async def sync_target(
        self,
        target: SyncTarget,
        context: SyncContext,
        now: datetime | None = None,
    ) -> VendorSyncResult:
        log = context.bind(logger)
        result = self.new_result(target)
        vendor = target.vendor
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        adapter = self.create_adapter(vendor)
        if not isinstance(adapter, SupportsAlertSearch):
            result.error = f"{vendor.vendor_type.value} adapter does not support alert search"
            return result

        async with adapter:
            try:
                await adapter.authenticate()
            except APIError as e:
                log.error("Vendor authentication failed", error=str(e))
                result.error = AUTH_FAILED_MESSAGE
                return result

            with get_session(self.engine) as session:
                station_map = PlantRepository(session).get_station_map(vendor.id)

            if not station_map:
                log.info("No plants stored for vendor, nothing to do")
                result.success = True
                return result

            start_day = resolve_alerts_start_date(
                vendor.credentials.get("alertsStartDate"),
                now,
                self.settings.alert_lookback_days,
            ).date().isoformat()
            end_day = now.date().isoformat()
            page_size = self.settings.alert_page_size

            log.info("Fetching alerts", start_day=start_day, end_day=end_day, page_size=page_size)

            page = 1
            while True:
                alerts = await adapter.search_alerts(start_day, end_day, page, page_size)
                if not alerts:
                    break

                result.total += len(alerts)
                for raw in alerts:
                    self._store_alert(raw, vendor.id, station_map, result, log)

                if len(alerts) < page_size:
                    break
                page += 1

        result.success = True

        if result.synced > 0:
            with get_session(self.engine) as session:
                VendorRepository(session).mark_alerts_synced(vendor.id)

        log.info(
            "Vendor alert sync complete",
            total=result.total,
            synced=result.synced,
            created=result.created,
            updated=result.updated,
            pages=page,
        )
        return result

    def _store_alert(
        self,
        raw: dict[str, Any],
        vendor_id: int,
        station_map: dict[int, tuple[int, str]],
        result: VendorSyncResult,
        log: Any,
    ) -> None:
        payload = build_alert_payload(raw, vendor_id, station_map, self.settings.alert_device_type)
        if payload is None:
            return
        try:
            with get_session(self.engine) as session:
                _, created = AlertRepository(session).upsert(payload)
        except SQLAlchemyError as e:
            log.error(
                "Alert upsert failed",
                vendor_alert_id=payload["vendor_alert_id"],
                plant_id=payload["plant_id"],
                error=str(e),
            )
            return

        result.synced += 1
        if created:
            result.created += 1
        else:
            result.updated += 1
