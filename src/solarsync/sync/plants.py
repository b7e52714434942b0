"""Plant synchronization: vendor plant lists upserted into the plants table."""

import math
import time
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from solarsync.db.engine import get_session
from solarsync.db.repositories.plant import PlantRepository
from solarsync.db.repositories.vendor import VendorRepository
from solarsync.sync.base import (
    AUTH_FAILED_MESSAGE,
    BaseSyncService,
    SyncTarget,
    elapsed_ms,
)
from solarsync.sync.context import SyncContext
from solarsync.sync.results import PlantSyncSummary, VendorSyncResult, summarize_errors
from solarsync.sync.schedule import local_now, should_sync_org
from solarsync.utils.exceptions import APIError, UnsupportedVendorError
from solarsync.vendors.models import VendorPlant

logger = structlog.get_logger(__name__)


def coerce_timestamp(value: Any) -> datetime | None:
    """Turn Unix seconds, an ISO-8601 string or a datetime into an aware UTC datetime.

    Args:
        value: Raw timestamp from a vendor payload.

    Returns:
        The parsed datetime, or None for empty or unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if math.isnan(value) or value <= 0:
            return None
        return datetime.fromtimestamp(math.floor(value), tz=timezone.utc)

    text = str(value).strip()
    try:
        return coerce_timestamp(float(text))
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def normalize_plant(plant: VendorPlant, vendor_id: int, org_id: int) -> dict[str, Any]:
    """Map a vendor plant to a plants row.

    Args:
        plant: Plant as returned by the adapter.
        vendor_id: Owning vendor.
        org_id: Owning organization.

    Returns:
        Column dictionary keyed for :meth:`PlantRepository.upsert_many`.
    """
    vendor_plant_id = str(plant.id).strip()
    if not vendor_plant_id:
        raise ValueError("plant has no vendor id")

    location = plant.location.model_dump() if plant.location else {}
    if plant.location_address:
        location["address"] = plant.location_address
    if not any(v is not None for v in location.values()):
        location = {}

    network_status = plant.network_status.strip() if plant.network_status else None

    return {
        "org_id": org_id,
        "vendor_id": vendor_id,
        "vendor_plant_id": vendor_plant_id,
        "name": plant.name or f"Plant {vendor_plant_id}",
        "capacity_kw": plant.capacity_kw or 0,
        "location": location or None,
        "current_power_kw": plant.current_power_kw,
        "daily_energy_mwh": plant.daily_energy_mwh,
        "monthly_energy_mwh": plant.monthly_energy_mwh,
        "yearly_energy_mwh": plant.yearly_energy_mwh,
        "total_energy_mwh": plant.total_energy_mwh,
        "performance_ratio": plant.performance_ratio,
        "network_status": network_status or None,
        "contact_phone": plant.contact_phone,
        "last_update_time": coerce_timestamp(plant.last_update_time),
        "vendor_created_date": coerce_timestamp(plant.created_date),
        "start_operating_time": coerce_timestamp(plant.start_operating_time),
    }


def chunked(rows: list[dict[str, Any]], size: int) -> list[list[dict[str, Any]]]:
    return [rows[i : i + size] for i in range(0, len(rows), size)]


class PlantSyncService(BaseSyncService):
    """Pulls plant lists from every vendor and upserts them."""

    operation = "sync-plants"

    async def sync_all(
        self,
        context: SyncContext | None = None,
        force: bool = False,
        now: datetime | None = None,
    ) -> PlantSyncSummary:
        """Sync plants for all active vendors whose organization is due.

        Args:
            context: Trigger context (a system context if not given).
            force: Skip the per-organization interval gate (manual triggers).
            now: Current time, for tests.

        Returns:
            Summary across vendors.
        """
        context = context or SyncContext(operation=self.operation)
        log = context.bind(logger)
        start = time.monotonic()

        targets = self.load_active_targets()
        local = local_now(self.settings.sync_timezone, now)

        due: list[SyncTarget] = []
        skipped_orgs: set[int] = set()
        for target in targets:
            org = target.org
            if force or should_sync_org(org, local, self.settings.default_sync_interval_minutes):
                due.append(target)
            elif org.id not in skipped_orgs:
                skipped_orgs.add(org.id)
                log.info(
                    "Skipping organization, not due for sync",
                    org_id=org.id,
                    org_name=org.name,
                    auto_sync_enabled=org.auto_sync_enabled,
                    sync_interval_minutes=org.sync_interval_minutes,
                    local_time=local.strftime("%H:%M"),
                )

        log.info("Starting plant sync", vendors=len(due), skipped_orgs=len(skipped_orgs), force=force)

        results = await self.run_targets(due, context)
        summary = PlantSyncSummary.from_results(results, elapsed_ms(start))

        log.info(
            "Plant sync complete",
            vendors=summary.total_vendors,
            successful=summary.successful,
            failed=summary.failed,
            synced=summary.total_plants_synced,
            created=summary.total_plants_created,
            updated=summary.total_plants_updated,
            duration_ms=summary.duration_ms,
        )
        return summary

    async def sync_vendor(self, vendor_id: int, context: SyncContext | None = None) -> VendorSyncResult:
        """Manually sync plants for one vendor, ignoring the schedule.

        Raises:
            VendorNotFoundError: If the vendor does not exist.
            SyncError: If the vendor has no organization.
        """
        context = context or SyncContext(operation=self.operation)
        target = self.load_target(vendor_id)
        self.require_org(target)

        if not target.vendor.is_active:
            context.bind(logger).info("Vendor is inactive, nothing to sync", vendor_id=vendor_id)
            result = self.new_result(target)
            result.success = True
            return result

        return (await self.run_targets([target], context))[0]

    async def sync_target(self, target: SyncTarget, context: SyncContext) -> VendorSyncResult:
        log = context.bind(logger)
        result = self.new_result(target)
        vendor = target.vendor
        org = self.require_org(target)

        try:
            adapter = self.create_adapter(vendor)
        except UnsupportedVendorError as e:
            log.warning("No adapter for vendor type", vendor_type=vendor.vendor_type.value)
            result.error = str(e)
            return result

        async with adapter:
            try:
                await adapter.authenticate()
            except APIError as e:
                log.error("Vendor authentication failed", error=str(e))
                result.error = AUTH_FAILED_MESSAGE
                return result

            vendor_plants = await adapter.list_plants()

        result.total = len(vendor_plants)
        if not vendor_plants:
            log.info("Vendor returned no plants")
            result.success = True
            return result

        errors: list[str] = []
        rows: dict[str, dict[str, Any]] = {}
        for plant in vendor_plants:
            try:
                row = normalize_plant(plant, vendor.id, org.id)
            except (TypeError, ValueError) as e:
                errors.append(f"Plant {plant.id}: {e}")
                continue
            # Last one wins if the vendor repeats a plant
            rows[row["vendor_plant_id"]] = row

        with get_session(self.engine) as session:
            existing = PlantRepository(session).get_vendor_plant_ids(vendor.id)

        for batch in chunked(list(rows.values()), self.settings.plant_batch_size):
            for row in self._upsert_batch(batch, errors, log):
                result.synced += 1
                if row["vendor_plant_id"] in existing:
                    result.updated += 1
                else:
                    result.created += 1

        result.success = not errors or len(errors) < len(vendor_plants)
        if errors:
            result.error = summarize_errors(errors)
            log.warning("Plant sync finished with errors", errors=len(errors))

        if result.success and result.synced > 0:
            with get_session(self.engine) as session:
                VendorRepository(session).mark_synced(vendor.id)

        log.info(
            "Vendor plant sync complete",
            success=result.success,
            total=result.total,
            synced=result.synced,
            created=result.created,
            updated=result.updated,
        )
        return result

    def _upsert_batch(
        self, batch: list[dict[str, Any]], errors: list[str], log: Any
    ) -> list[dict[str, Any]]:
        """Upsert a batch, falling back to one row at a time if the batch fails.

        Returns:
            The rows that were written.
        """
        try:
            with get_session(self.engine) as session:
                PlantRepository(session).upsert_many(batch)
            return batch
        except SQLAlchemyError as e:
            log.warning("Batch upsert failed, retrying rows individually", rows=len(batch), error=str(e))

        written = []
        for row in batch:
            try:
                with get_session(self.engine) as session:
                    PlantRepository(session).upsert_many([row])
                written.append(row)
            except SQLAlchemyError as e:
                log.error("Plant upsert failed", vendor_plant_id=row["vendor_plant_id"], error=str(e))
                errors.append(f"Plant {row['vendor_plant_id']}: {e}")
        return written
