"""Database module for Solar Sync."""

from solarsync.db.base import Base, TimestampMixin
from solarsync.db.engine import create_engine, create_tables, drop_tables, get_session

__all__ = ["Base", "TimestampMixin", "create_engine", "create_tables", "drop_tables", "get_session"]
