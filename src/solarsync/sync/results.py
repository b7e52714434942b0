"""Result and summary records returned by the sync services."""

from dataclasses import dataclass, field
from typing import Any

MAX_REPORTED_ERRORS = 3


def summarize_errors(errors: list[str], limit: int = MAX_REPORTED_ERRORS) -> str:
    """Join the first few errors into one message.

    Args:
        errors: Collected error messages.
        limit: Number of errors to include before truncating.

    Returns:
        ``"Some errors occurred: a; b; c..."``
    """
    text = "Some errors occurred: " + "; ".join(errors[:limit])
    if len(errors) > limit:
        text += "..."
    return text


@dataclass
class VendorSyncResult:
    """Outcome of syncing one vendor."""

    vendor_id: int
    vendor_name: str
    org_id: int | None = None
    org_name: str | None = None
    success: bool = False
    synced: int = 0
    created: int = 0
    updated: int = 0
    total: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase JSON shape."""
        data: dict[str, Any] = {
            "vendorId": self.vendor_id,
            "vendorName": self.vendor_name,
            "orgId": self.org_id,
            "orgName": self.org_name,
            "success": self.success,
            "synced": self.synced,
            "created": self.created,
            "updated": self.updated,
            "total": self.total,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class PlantSyncSummary:
    """Summary of a plant sync across vendors."""

    total_vendors: int = 0
    successful: int = 0
    failed: int = 0
    total_plants_synced: int = 0
    total_plants_created: int = 0
    total_plants_updated: int = 0
    duration_ms: int = 0
    results: list[VendorSyncResult] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[VendorSyncResult], duration_ms: int) -> "PlantSyncSummary":
        successful = sum(1 for r in results if r.success)
        return cls(
            total_vendors=len(results),
            successful=successful,
            failed=len(results) - successful,
            total_plants_synced=sum(r.synced for r in results),
            total_plants_created=sum(r.created for r in results),
            total_plants_updated=sum(r.updated for r in results),
            duration_ms=duration_ms,
            results=results,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalVendors": self.total_vendors,
            "successful": self.successful,
            "failed": self.failed,
            "totalPlantsSynced": self.total_plants_synced,
            "totalPlantsCreated": self.total_plants_created,
            "totalPlantsUpdated": self.total_plants_updated,
            "duration": self.duration_ms,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class AlertSyncSummary:
    """Summary of an alert sync across vendors."""

    total_vendors: int = 0
    successful: int = 0
    failed: int = 0
    total_alerts_synced: int = 0
    total_alerts_created: int = 0
    total_alerts_updated: int = 0
    duration_ms: int = 0
    results: list[VendorSyncResult] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[VendorSyncResult], duration_ms: int) -> "AlertSyncSummary":
        successful = sum(1 for r in results if r.success)
        return cls(
            total_vendors=len(results),
            successful=successful,
            failed=len(results) - successful,
            total_alerts_synced=sum(r.synced for r in results),
            total_alerts_created=sum(r.created for r in results),
            total_alerts_updated=sum(r.updated for r in results),
            duration_ms=duration_ms,
            results=results,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalVendors": self.total_vendors,
            "successful": self.successful,
            "failed": self.failed,
            "totalAlertsSynced": self.total_alerts_synced,
            "totalAlertsCreated": self.total_alerts_created,
            "totalAlertsUpdated": self.total_alerts_updated,
            "duration": self.duration_ms,
            "results": [r.to_dict() for r in self.results],
        }
