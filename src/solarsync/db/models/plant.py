"""Plant ORM model."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from solarsync.db.base import Base, TimestampMixin


class Plant(Base, TimestampMixin):
    """Solar installation as reported by a vendor.

    ``id`` is internal. ``vendor_plant_id`` is the vendor's own station id and
    is what every upstream call must use.
    """

    __tablename__ = "plants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vendor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vendor_plant_id: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity_kw: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    location: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Production snapshot
    current_power_kw: Mapped[float | None] = mapped_column(Float, nullable=True)
    daily_energy_mwh: Mapped[float | None] = mapped_column(Float, nullable=True)
    monthly_energy_mwh: Mapped[float | None] = mapped_column(Float, nullable=True)
    yearly_energy_mwh: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_energy_mwh: Mapped[float | None] = mapped_column(Float, nullable=True)
    performance_ratio: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Status and vendor metadata
    network_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_update_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    vendor_created_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    start_operating_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    organization: Mapped["Organization"] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Organization", back_populates="plants"
    )
    vendor: Mapped["Vendor"] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Vendor", back_populates="plants"
    )
    alerts: Mapped[list["Alert"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Alert", back_populates="plant", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("vendor_id", "vendor_plant_id", name="uq_plant_vendor"),
    )

    def __repr__(self) -> str:
        return f"<Plant(id={self.id}, vendor={self.vendor_id}, vendor_plant_id='{self.vendor_plant_id}')>"
