"""Alert ORM model."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from solarsync.db.base import Base, TimestampMixin
from solarsync.db.models.enums import AlertSeverity, AlertStatus


class Alert(Base, TimestampMixin):
    """Vendor-reported alert for a plant."""

    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vendor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("plants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vendor_plant_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Alert identification
    vendor_alert_id: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    severity: Mapped[AlertSeverity] = mapped_column(
        Enum(AlertSeverity, native_enum=False, length=20), nullable=False
    )
    status: Mapped[AlertStatus] = mapped_column(
        Enum(AlertStatus, native_enum=False, length=20), nullable=False
    )

    # Affected component
    station_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    device_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Timestamps
    alert_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    grid_down_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Raw vendor payload ("metadata" is reserved on declarative classes)
    vendor_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    plant: Mapped["Plant"] = relationship("Plant", back_populates="alerts")  # type: ignore[name-defined] # noqa: F821

    __table_args__ = (
        UniqueConstraint("vendor_id", "vendor_alert_id", "plant_id", name="uq_alert_vendor"),
    )

    def __repr__(self) -> str:
        return (
            f"<Alert(vendor={self.vendor_id}, id='{self.vendor_alert_id}', "
            f"status={self.status.value})>"
        )
