"""Base repository class."""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from solarsync.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Base repository with lookups and a dialect-aware bulk upsert."""

    model: type[ModelT]

    def __init__(self, session: Session) -> None:
        """Initialize repository with a session.

        Args:
            session: SQLAlchemy session.
        """
        self.session = session

    @property
    def dialect(self) -> str:
        """Name of the bound database dialect."""
        return self.session.bind.dialect.name if self.session.bind else "sqlite"

    def get_by_id(self, id: int) -> ModelT | None:
        return self.session.get(self.model, id)

    def get_all(self) -> list[ModelT]:
        return list(self.session.scalars(select(self.model)).all())

    def upsert_rows(
        self,
        values: list[dict[str, Any]],
        conflict_columns: list[str],
        update_columns: list[str],
    ) -> None:
        """Insert rows, updating ``update_columns`` where the unique key exists.

        Uses ON CONFLICT on PostgreSQL and SQLite and ON DUPLICATE KEY on
        MySQL/MariaDB, so the whole batch is one statement.

        Args:
            values: Row dictionaries, all with the same keys.
            conflict_columns: Columns of the unique constraint rows collide on.
            update_columns: Columns overwritten on a collision.
        """
        if self.dialect in ("mysql", "mariadb"):
            stmt = mysql_insert(self.model).values(values)
            stmt = stmt.on_duplicate_key_update({k: stmt.inserted[k] for k in update_columns})
        else:
            insert = pg_insert if self.dialect == "postgresql" else sqlite_insert
            stmt = insert(self.model).values(values)
            stmt = stmt.on_conflict_do_update(
                index_elements=conflict_columns,
                set_={k: stmt.excluded[k] for k in update_columns},
            )

        self.session.execute(stmt)
        self.session.flush()
