"""Plant repository."""

from typing import Any

from sqlalchemy import select

from solarsync.db.base import utcnow
from solarsync.db.models.plant import Plant
from solarsync.db.repositories.base import BaseRepository

# Columns that identify a plant and are never overwritten by an upsert
_KEY_COLUMNS = ("vendor_id", "vendor_plant_id", "created_at")


class PlantRepository(BaseRepository[Plant]):
    """Repository for Plant operations."""

    model = Plant

    def get_vendor_plant_ids(self, vendor_id: int) -> set[str]:
        """Get the vendor plant ids already stored for a vendor.

        Args:
            vendor_id: Vendor ID.

        Returns:
            Set of vendor_plant_id values.
        """
        stmt = select(Plant.vendor_plant_id).where(Plant.vendor_id == vendor_id)
        return set(self.session.scalars(stmt).all())

    def get_by_vendor(self, vendor_id: int) -> list[Plant]:
        """Get all plants of a vendor."""
        stmt = select(Plant).where(Plant.vendor_id == vendor_id).order_by(Plant.id)
        return list(self.session.scalars(stmt).all())

    def get_by_vendor_plant_id(self, vendor_id: int, vendor_plant_id: str) -> Plant | None:
        """Get a plant by its upsert key."""
        stmt = select(Plant).where(
            Plant.vendor_id == vendor_id,
            Plant.vendor_plant_id == vendor_plant_id,
        )
        return self.session.scalar(stmt)

    def get_station_map(self, vendor_id: int) -> dict[int, tuple[int, str]]:
        """Map numeric vendor station ids to stored plants.

        Plants whose vendor_plant_id is not numeric are left out.

        Args:
            vendor_id: Vendor ID.

        Returns:
            Mapping of station id to (plant id, vendor_plant_id).
        """
        stmt = select(Plant.id, Plant.vendor_plant_id).where(Plant.vendor_id == vendor_id)
        station_map: dict[int, tuple[int, str]] = {}
        for plant_id, vendor_plant_id in self.session.execute(stmt).all():
            try:
                station_id = int(str(vendor_plant_id).strip())
            except ValueError:
                continue
            station_map[station_id] = (plant_id, vendor_plant_id)
        return station_map

    def upsert_many(self, rows: list[dict[str, Any]]) -> int:
        """Insert or update plants keyed on (vendor_id, vendor_plant_id).

        Every row must carry the same keys.

        Args:
            rows: Plant attribute dictionaries.

        Returns:
            Number of rows written.
        """
        if not rows:
            return 0

        now = utcnow()
        values = [{**row, "created_at": now, "updated_at": now} for row in rows]
        update_columns = [k for k in values[0] if k not in _KEY_COLUMNS]

        self.upsert_rows(values, ["vendor_id", "vendor_plant_id"], update_columns)
        return len(values)
