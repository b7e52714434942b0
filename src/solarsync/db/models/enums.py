"""Enumerations shared by the ORM models and the sync services."""

import enum


class VendorType(str, enum.Enum):
    """Supported monitoring vendor families."""

    SOLARMAN = "SOLARMAN"
    SUNGROW = "SUNGROW"
    SOLARDM = "SOLARDM"
    OTHER = "OTHER"


class AlertSeverity(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AlertStatus(str, enum.Enum):
    """Alert lifecycle. ACKNOWLEDGED is set by operators, never by the sync job."""

    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    ACKNOWLEDGED = "ACKNOWLEDGED"
