"""Alert repository."""

from typing import Any

from sqlalchemy import select

from solarsync.db.models.alert import Alert
from solarsync.db.repositories.base import BaseRepository


class AlertRepository(BaseRepository[Alert]):
    """Repository for Alert operations."""

    model = Alert

    def get_by_plant(self, plant_id: int) -> list[Alert]:
        """Get all alerts for a plant, newest first."""
        stmt = select(Alert).where(Alert.plant_id == plant_id).order_by(Alert.alert_time.desc())
        return list(self.session.scalars(stmt).all())

    def get_by_vendor_alert_id(
        self, vendor_id: int, vendor_alert_id: str, plant_id: int
    ) -> Alert | None:
        """Get an alert by its dedup key.

        Args:
            vendor_id: Vendor ID.
            vendor_alert_id: Alert id assigned by the vendor.
            plant_id: Internal plant ID.

        Returns:
            Alert or None.
        """
        stmt = select(Alert).where(
            Alert.vendor_id == vendor_id,
            Alert.vendor_alert_id == vendor_alert_id,
            Alert.plant_id == plant_id,
        )
        return self.session.scalar(stmt)

    def upsert(self, data: dict[str, Any]) -> tuple[Alert, bool]:
        """Update the alert matching the dedup key, or insert a new one.

        Args:
            data: Alert attributes including vendor_id, vendor_alert_id and plant_id.

        Returns:
            Tuple of (alert, created).
        """
        existing = self.get_by_vendor_alert_id(
            data["vendor_id"], data["vendor_alert_id"], data["plant_id"]
        )
        if existing is not None:
            for key, value in data.items():
                setattr(existing, key, value)
            self.session.flush()
            return existing, False

        alert = Alert(**data)
        self.session.add(alert)
        self.session.flush()
        return alert, True
