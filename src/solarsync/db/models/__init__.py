"""ORM models for vendor, plant and alert data."""

from solarsync.db.models.alert import Alert
from solarsync.db.models.enums import AlertSeverity, AlertStatus, VendorType
from solarsync.db.models.organization import Organization
from solarsync.db.models.plant import Plant
from solarsync.db.models.vendor import Vendor

__all__ = [
    "Alert",
    "AlertSeverity",
    "AlertStatus",
    "Organization",
    "Plant",
    "Vendor",
    "VendorType",
]
