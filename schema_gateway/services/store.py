"""
Durable schema store backed by SQLAlchemy.

The registry talks to the store only through the ``SchemaStore`` protocol,
so any object with these methods can stand in for the database (tests use
in-memory SQLite or a fake that always fails).
"""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from schema_gateway.models.schema import SchemaRow

logger = logging.getLogger(__name__)


class SchemaStore(Protocol):
    def find_by_id(self, schema_id: int) -> SchemaRow | None: ...

    def find_all_ordered_by_id(self) -> list[SchemaRow]: ...

    def exists_by_id(self, schema_id: int) -> bool: ...

    def save(self, schema_id: int, name: str, body: str, description: str | None = None) -> None: ...

    def delete_by_id(self, schema_id: int) -> None: ...

    def find_max_id(self) -> int | None: ...


class SqlSchemaStore:
    """``SchemaStore`` over a relational database, one session per call."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def find_by_id(self, schema_id: int) -> SchemaRow | None:
        with self._session() as db:
            return db.get(SchemaRow, schema_id)

    def find_all_ordered_by_id(self) -> list[SchemaRow]:
        with self._session() as db:
            return list(db.scalars(select(SchemaRow).order_by(SchemaRow.schema_id)))

    def exists_by_id(self, schema_id: int) -> bool:
        with self._session() as db:
            found = db.scalar(select(SchemaRow.schema_id).where(SchemaRow.schema_id == schema_id))
            return found is not None

    def save(self, schema_id: int, name: str, body: str, description: str | None = None) -> None:
        """Insert a new row or overwrite name/body of an existing one."""
        with self._session() as db:
            row = db.get(SchemaRow, schema_id)
            if row is None:
                row = SchemaRow(schema_id=schema_id, schema_name=name, json_schema=body, description=description)
                db.add(row)
            else:
                row.schema_name = name
                row.json_schema = body
                if description is not None:
                    row.description = description
            db.commit()
        logger.debug("Stored schema row %s", schema_id)

    def delete_by_id(self, schema_id: int) -> None:
        with self._session() as db:
            row = db.get(SchemaRow, schema_id)
            if row is not None:
                db.delete(row)
                db.commit()

    def find_max_id(self) -> int | None:
        with self._session() as db:
            return db.scalar(select(func.max(SchemaRow.schema_id)))
