"""
FastAPI application entrypoint.

Run locally:  uvicorn schema_gateway.main:app --reload
Set DATABASE_URL to persist schemas; without it the registry is in-memory only.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from schema_gateway.api.gateway import ProtocolGateway
from schema_gateway.api.routes import router
from schema_gateway.config import settings
from schema_gateway.models import schema as _schema_models  # noqa: F401  (registers the table)
from schema_gateway.models.database import Base, SessionLocal, engine
from schema_gateway.services.registry import SchemaRegistry
from schema_gateway.services.store import SqlSchemaStore
from schema_gateway.services.validation import ValidationDispatcher

logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s | %(name)s | %(message)s")
logger = logging.getLogger(__name__)


def build_registry() -> SchemaRegistry:
    """Registry over the configured database, or cache-only when there is none."""
    store = SqlSchemaStore(SessionLocal) if SessionLocal is not None else None
    return SchemaRegistry(store)


def create_app(
    registry: SchemaRegistry | None = None,
    dispatcher: ValidationDispatcher | None = None,
) -> FastAPI:
    if registry is None:
        registry = build_registry()
    if dispatcher is None:
        dispatcher = ValidationDispatcher()

    app = FastAPI(
        title="JSON Schema Validation Gateway",
        description=(
            "JSON-RPC 2.0 service that stores named JSON schemas and validates "
            "documents against them."
        ),
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
        max_age=3600,
    )
    app.state.gateway = ProtocolGateway(registry, dispatcher)
    app.include_router(router)

    @app.on_event("startup")
    def on_startup():
        if engine is not None:
            try:
                Base.metadata.create_all(bind=engine)
            except SQLAlchemyError as exc:
                logger.error("Could not create schema tables: %s", exc)
        registry.load_from_store()
        logger.info(
            "Serving JSON-RPC on %s (draft %s, %d schemas cached)",
            settings.RPC_PATH,
            dispatcher.draft,
            registry.count(),
        )

    return app


app = create_app()
