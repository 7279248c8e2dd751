"""Shared fixtures: an in-memory SQLite store and a store that always fails."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from schema_gateway.models import schema as _schema_models  # noqa: F401
from schema_gateway.models.database import Base, create_session_factory
from schema_gateway.services.store import SqlSchemaStore


class FailingStore:
    """Durable store whose every call raises, as if the database were down."""

    def __init__(self):
        self.calls = []

    def _fail(self, name):
        self.calls.append(name)
        raise RuntimeError(f"database unreachable ({name})")

    def find_by_id(self, schema_id):
        self._fail("find_by_id")

    def find_all_ordered_by_id(self):
        self._fail("find_all_ordered_by_id")

    def exists_by_id(self, schema_id):
        self._fail("exists_by_id")

    def save(self, schema_id, name, body, description=None):
        self._fail("save")

    def delete_by_id(self, schema_id):
        self._fail("delete_by_id")

    def find_max_id(self):
        self._fail("find_max_id")


@pytest.fixture
def sql_store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield SqlSchemaStore(create_session_factory(engine))
    engine.dispose()


@pytest.fixture
def failing_store():
    return FailingStore()
