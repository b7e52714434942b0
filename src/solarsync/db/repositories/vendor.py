"""Vendor repository."""

from datetime import datetime
from typing import Any

from sqlalchemy import select

from solarsync.db.base import utcnow
from solarsync.db.models.organization import Organization
from solarsync.db.models.vendor import Vendor
from solarsync.db.repositories.base import BaseRepository


class VendorRepository(BaseRepository[Vendor]):
    """Repository for Vendor operations."""

    model = Vendor

    def get_active_with_org(self) -> list[tuple[Vendor, Organization]]:
        """Get active vendors that belong to an organization.

        Returns:
            List of (vendor, organization) pairs ordered by vendor id.
        """
        stmt = (
            select(Vendor, Organization)
            .join(Organization, Vendor.org_id == Organization.id)
            .where(Vendor.is_active.is_(True))
            .order_by(Vendor.id)
        )
        return [(vendor, org) for vendor, org in self.session.execute(stmt).all()]

    def get_with_org(self, vendor_id: int) -> tuple[Vendor, Organization | None] | None:
        """Get a vendor together with its organization, if any.

        Args:
            vendor_id: Vendor ID.

        Returns:
            (vendor, organization) pair, or None if the vendor does not exist.
        """
        stmt = (
            select(Vendor, Organization)
            .outerjoin(Organization, Vendor.org_id == Organization.id)
            .where(Vendor.id == vendor_id)
        )
        row = self.session.execute(stmt).first()
        if row is None:
            return None
        return row[0], row[1]

    def get_sync_status(self) -> list[tuple[Vendor, Organization | None]]:
        """Get every vendor with its organization for status reporting."""
        stmt = (
            select(Vendor, Organization)
            .outerjoin(Organization, Vendor.org_id == Organization.id)
            .order_by(Vendor.name, Vendor.id)
        )
        return [(vendor, org) for vendor, org in self.session.execute(stmt).all()]

    def get_credentials(self, vendor_id: int) -> dict[str, Any]:
        """Get the stored credentials of a vendor.

        Args:
            vendor_id: Vendor ID.

        Returns:
            Copy of the credentials mapping (empty if the vendor is missing).
        """
        vendor = self.get_by_id(vendor_id)
        if vendor is None:
            return {}
        return dict(vendor.credentials or {})

    def merge_credentials(self, vendor_id: int, updates: dict[str, Any]) -> None:
        """Merge keys into a vendor's credentials.

        A new dict is assigned so the JSON column is flagged as modified.

        Args:
            vendor_id: Vendor ID.
            updates: Keys to set.
        """
        vendor = self.get_by_id(vendor_id)
        if vendor is None:
            return
        vendor.credentials = {**(vendor.credentials or {}), **updates}
        self.session.flush()

    def mark_synced(self, vendor_id: int, when: datetime | None = None) -> None:
        """Set last_synced_at for a vendor."""
        vendor = self.get_by_id(vendor_id)
        if vendor is not None:
            vendor.last_synced_at = when or utcnow()
            self.session.flush()

    def mark_alerts_synced(self, vendor_id: int, when: datetime | None = None) -> None:
        """Set last_alert_synced_at for a vendor."""
        vendor = self.get_by_id(vendor_id)
        if vendor is not None:
            vendor.last_alert_synced_at = when or utcnow()
            self.session.flush()
