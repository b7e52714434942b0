"""Vendor ORM model."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from solarsync.db.base import Base, TimestampMixin
from solarsync.db.models.enums import VendorType


class Vendor(Base, TimestampMixin):
    """A configured account at a monitoring vendor.

    ``credentials`` holds the vendor's API keys and secrets and, once the
    adapter has logged in, the cached ``access_token``, ``token_expires_at``
    and ``refresh_token``.
    """

    __tablename__ = "vendors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_type: Mapped[VendorType] = mapped_column(
        Enum(VendorType, native_enum=False, length=20), nullable=False
    )
    credentials: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    api_base_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    org_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_alert_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    organization: Mapped["Organization | None"] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Organization", back_populates="vendors"
    )
    plants: Mapped[list["Plant"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Plant", back_populates="vendor", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Vendor(id={self.id}, name='{self.name}', type={self.vendor_type.value})>"
