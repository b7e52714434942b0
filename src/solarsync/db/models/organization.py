"""Organization ORM model."""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from solarsync.db.base import Base, TimestampMixin


class Organization(Base, TimestampMixin):
    """Tenant that owns vendors and plants."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    auto_sync_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sync_interval_minutes: Mapped[int | None] = mapped_column(Integer, default=15, nullable=True)

    vendors: Mapped[list["Vendor"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Vendor", back_populates="organization"
    )
    plants: Mapped[list["Plant"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Plant", back_populates="organization"
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name='{self.name}')>"
