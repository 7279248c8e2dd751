"""
FastAPI routes: the JSON-RPC endpoint plus a health check.

The JSON-RPC endpoint always answers HTTP 200; the envelope's ``error``
member is the only failure channel.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from schema_gateway.api.gateway import ProtocolGateway
from schema_gateway.config import settings
from schema_gateway.schemas.api import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def get_gateway(request: Request) -> ProtocolGateway:
    """FastAPI dependency returning the application's shared gateway."""
    return request.app.state.gateway


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
def health_check(gateway: ProtocolGateway = Depends(get_gateway)):
    """Report durable-store connectivity and the number of cached schemas."""
    return HealthResponse(
        status="healthy",
        environment=settings.ENVIRONMENT,
        database=gateway.registry.store_status(),
        schemas=gateway.registry.count(),
    )


# ---------------------------------------------------------------------------
# JSON-RPC endpoint
# ---------------------------------------------------------------------------

@router.post(settings.RPC_PATH)
async def handle_json_rpc(request: Request, gateway: ProtocolGateway = Depends(get_gateway)):
    """
    Accept one JSON-RPC 2.0 request.
    Supported methods: validate, validateById, saveSchema, getAllSchemas,
    getSchema, getAllSchemasMetadata, updateSchema, deleteSchema, schemaExists.
    """
    raw = await request.body()
    # Registry and store calls block, so run them on the worker pool.
    envelope = await run_in_threadpool(gateway.handle, raw)
    return JSONResponse(status_code=200, content=envelope)
