"""Vendor sync status reporting."""

from datetime import datetime
from typing import Any

from sqlalchemy import Engine

from solarsync.db.engine import get_session
from solarsync.db.repositories.vendor import VendorRepository


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def get_vendor_sync_status(engine: Engine) -> list[dict[str, Any]]:
    """List every vendor with its organization sync settings and last sync times."""
    with get_session(engine) as session:
        rows = VendorRepository(session).get_sync_status()
        return [
            {
                "id": vendor.id,
                "name": vendor.name,
                "vendor_type": vendor.vendor_type.value,
                "is_active": vendor.is_active,
                "last_synced_at": _iso(vendor.last_synced_at),
                "last_alert_synced_at": _iso(vendor.last_alert_synced_at),
                "organization": (
                    {
                        "id": org.id,
                        "name": org.name,
                        "auto_sync_enabled": org.auto_sync_enabled,
                        "sync_interval_minutes": org.sync_interval_minutes,
                    }
                    if org
                    else None
                ),
            }
            for vendor, org in rows
        ]
