"""Repository classes for database operations."""

from solarsync.db.repositories.alert import AlertRepository
from solarsync.db.repositories.plant import PlantRepository
from solarsync.db.repositories.vendor import VendorRepository

__all__ = [
    "AlertRepository",
    "PlantRepository",
    "VendorRepository",
]
