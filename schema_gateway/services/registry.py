"""
Schema registry: ID-addressable storage of named JSON schemas.

The registry keeps every record in an in-process cache and, when a durable
store is configured, mirrors writes into it and reads through it on cache
misses. The store is best-effort: any fault it raises is logged and the
operation carries on against the cache alone.

One registry instance is built at startup and shared by all request
handlers, which run on a worker thread pool. A single lock guards the
cache and the ID counter. There is no lock across the existence check and
the insert of an explicit ID, so two concurrent saves with the same custom
ID can both pass the check; the later write wins in the cache.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from schema_gateway.schemas.rpc import JSONValue
from schema_gateway.services.store import SchemaStore

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RegistryError(Exception):
    """Base class for domain errors raised by the registry."""


class IdAlreadyInUse(RegistryError):
    def __init__(self, schema_id: int):
        super().__init__(f"ID {schema_id} already in use")
        self.schema_id = schema_id


@dataclass
class SchemaRecord:
    id: int
    name: str
    schema: JSONValue
    uploaded_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "uploadDate": self.uploaded_at.strftime(TIMESTAMP_FORMAT),
            "schema": self.schema,
        }


@dataclass
class SchemaMetadata:
    """
    Listing entry without the body.

    Cache entries carry the upload time (``uploadDate``). Store rows carry
    their description and last-changed time (``chgDt``) instead, since the
    store does not keep the original upload time.
    """

    id: int
    name: str
    uploaded_at: datetime | None = None
    description: str | None = None
    changed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.uploaded_at is not None:
            data["uploadDate"] = self.uploaded_at.strftime(TIMESTAMP_FORMAT)
        if self.description is not None:
            data["description"] = self.description
        if self.changed_at is not None:
            data["chgDt"] = self.changed_at.strftime(TIMESTAMP_FORMAT)
        return data


class SchemaRegistry:
    def __init__(self, store: SchemaStore | None = None):
        self._store = store
        self._cache: dict[int, SchemaRecord] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def store_status(self) -> str:
        """Store health for the /health endpoint: disabled, connected or disconnected."""
        if self._store is None:
            return "disabled"
        try:
            self._store.find_max_id()
        except Exception as exc:
            logger.warning("Durable store unreachable: %s", exc)
            return "disconnected"
        return "connected"

    # ------------------------------------------------------------------
    # ID allocation
    # ------------------------------------------------------------------

    def _allocate_id(self) -> int:
        with self._lock:
            schema_id = self._next_id
            self._next_id += 1
            return schema_id

    def _advance_counter_past(self, schema_id: int) -> None:
        with self._lock:
            if schema_id >= self._next_id:
                self._next_id = schema_id + 1

    # ------------------------------------------------------------------
    # Durable store helpers (faults are logged, never raised)
    # ------------------------------------------------------------------

    def _store_exists(self, schema_id: int) -> bool:
        if self._store is None:
            return False
        try:
            return self._store.exists_by_id(schema_id)
        except Exception as exc:
            logger.error("Store existence check failed for schema %s: %s", schema_id, exc, exc_info=True)
            return False

    def _read_through(self, schema_id: int) -> SchemaRecord | None:
        if self._store is None:
            return None
        try:
            row = self._store.find_by_id(schema_id)
            if row is None:
                return None
            record = SchemaRecord(
                id=row.schema_id,
                name=row.schema_name,
                schema=json.loads(row.json_schema),
                uploaded_at=_utcnow(),
            )
        except Exception as exc:
            logger.error("Error loading schema %s from store: %s", schema_id, exc, exc_info=True)
            return None

        with self._lock:
            # A concurrent save may have cached the ID meanwhile; keep that one.
            record = self._cache.setdefault(schema_id, record)
        logger.info("Loaded schema %s from store", schema_id)
        return record

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def load_from_store(self) -> int:
        """Replace the cache with the store's contents and seed the ID counter."""
        if self._store is None:
            logger.info("No durable store configured - using in-memory storage only")
            return 0

        try:
            rows = self._store.find_all_ordered_by_id()
            max_id = self._store.find_max_id()
        except Exception as exc:
            logger.error("Error loading schemas from store: %s", exc, exc_info=True)
            logger.info("Continuing with in-memory storage only")
            return 0

        loaded: dict[int, SchemaRecord] = {}
        for row in rows:
            try:
                body = json.loads(row.json_schema)
            except ValueError as exc:
                logger.error("Skipping schema %s: stored body is not JSON (%s)", row.schema_id, exc)
                continue
            loaded[row.schema_id] = SchemaRecord(
                id=row.schema_id,
                name=row.schema_name,
                schema=body,
                uploaded_at=_utcnow(),
            )

        with self._lock:
            self._cache = loaded
            if max_id is not None:
                self._next_id = max_id + 1
            next_id = self._next_id
        logger.info("Loaded %d schemas from store. Next ID: %d", len(loaded), next_id)
        return len(loaded)

    def save(self, name: str, schema: JSONValue, schema_id: int | None = None) -> int:
        """
        Store a new schema and return its ID.

        Without ``schema_id`` the next counter value is used. An explicit ID
        must be free in both the cache and the store, otherwise
        ``IdAlreadyInUse`` is raised; the counter is then moved past it so
        later auto-allocated IDs never collide with it.
        """
        if schema_id is not None:
            with self._lock:
                in_cache = schema_id in self._cache
            if in_cache or self._store_exists(schema_id):
                logger.warning("Attempt to save schema with existing ID: %s", schema_id)
                raise IdAlreadyInUse(schema_id)
            self._advance_counter_past(schema_id)
        else:
            schema_id = self._allocate_id()

        record = SchemaRecord(id=schema_id, name=name, schema=copy.deepcopy(schema))

        if self._store is not None:
            try:
                self._store.save(schema_id, name, json.dumps(record.schema), description=f"Schema: {name}")
            except Exception as exc:
                logger.error("Error saving schema %s to store: %s", schema_id, exc, exc_info=True)
                logger.info("Schema %s kept in in-memory storage only", schema_id)

        with self._lock:
            self._cache[schema_id] = record
        logger.info("Schema '%s' saved with ID %s", name, schema_id)
        return schema_id

    def update(self, schema_id: int, schema: JSONValue) -> bool:
        """Replace the body of a cached schema. Name, ID and upload date stay."""
        with self._lock:
            record = self._cache.get(schema_id)
        if record is None:
            logger.warning("Attempt to update non-existent schema with ID: %s", schema_id)
            return False

        body = copy.deepcopy(schema)
        if self._store is not None:
            try:
                if self._store.find_by_id(schema_id) is not None:
                    self._store.save(schema_id, record.name, json.dumps(body))
            except Exception as exc:
                logger.error("Error updating schema %s in store: %s", schema_id, exc, exc_info=True)

        with self._lock:
            record.schema = body
        logger.info("Schema with ID %s updated", schema_id)
        return True

    def exists(self, schema_id: int) -> bool:
        with self._lock:
            if schema_id in self._cache:
                return True
        return self._store_exists(schema_id)

    def delete(self, schema_id: int) -> bool:
        """Remove a schema everywhere; True only if the cache held it."""
        if self._store is not None:
            try:
                if self._store.exists_by_id(schema_id):
                    self._store.delete_by_id(schema_id)
            except Exception as exc:
                logger.error("Error deleting schema %s from store: %s", schema_id, exc, exc_info=True)

        with self._lock:
            removed = self._cache.pop(schema_id, None)
        if removed is None:
            logger.warning("Attempt to delete non-existent schema with ID: %s", schema_id)
            return False
        logger.info("Schema with ID %s deleted", schema_id)
        return True

    def get(self, schema_id: int) -> SchemaRecord | None:
        with self._lock:
            record = self._cache.get(schema_id)
        if record is not None:
            return record
        return self._read_through(schema_id)

    def get_by_id(self, schema_id: int) -> SchemaRecord | None:
        return self.get(schema_id)

    def list_all(self) -> list[SchemaRecord]:
        with self._lock:
            records = list(self._cache.values())
        return sorted(records, key=lambda r: r.id)

    def list_metadata(self) -> list[SchemaMetadata]:
        """
        Metadata for every schema, without bodies.

        The store is the preferred source; the cache is used only when the
        store is absent, failing, or returns nothing.
        """
        metadata: list[SchemaMetadata] = []
        if self._store is not None:
            try:
                metadata = [
                    SchemaMetadata(
                        id=row.schema_id,
                        name=row.schema_name,
                        description=row.description,
                        changed_at=row.chg_dt,
                    )
                    for row in self._store.find_all_ordered_by_id()
                ]
            except Exception as exc:
                logger.error("Error loading metadata from store, using cache: %s", exc)
                metadata = []

        if not metadata:
            metadata = [
                SchemaMetadata(id=r.id, name=r.name, uploaded_at=r.uploaded_at)
                for r in self.list_all()
            ]
        return metadata

    def count(self) -> int:
        with self._lock:
            return len(self._cache)
