"""Database engine factory and session management."""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Engine, event
from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from solarsync.config.settings import Settings
from solarsync.db.base import Base


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    # SQLite ignores ON DELETE rules unless this is set on every connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(settings: Settings) -> Engine:
    """Create a SQLAlchemy engine for the sync database.

    SQLite connections get foreign key enforcement, so deleting a vendor
    removes its plants and alerts as it does on PostgreSQL and MySQL. An
    in-memory SQLite database is pinned to a single connection.

    Args:
        settings: Application settings containing database URL.

    Returns:
        Configured SQLAlchemy engine.
    """
    url = settings.database_url
    is_sqlite = url.startswith("sqlite")
    options: dict[str, Any] = {
        "echo": settings.log_level == "DEBUG",
        "pool_pre_ping": True,
    }

    if is_sqlite:
        options["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url:
            options["poolclass"] = StaticPool

    engine = sa_create_engine(url, **options)
    if is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_tables(engine: Engine) -> None:
    """Create the organization, vendor, plant and alert tables if missing."""
    # Registers the models on Base.metadata
    from solarsync.db import models as _  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine: Engine) -> None:
    Base.metadata.drop_all(bind=engine)


@contextmanager
def get_session(engine: Engine) -> Generator[Session, None, None]:
    """Open a session that commits when the block exits cleanly.

    Objects stay loaded after the commit so sync results can be read
    once the session has closed.

    Args:
        engine: SQLAlchemy engine.

    Yields:
        Database session, rolled back if the block raises.
    """
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
