"""Pydantic models for the plain HTTP (non JSON-RPC) endpoints."""

from __future__ import annotations

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str = "healthy"
    environment: str
    database: str = "disabled"
    schemas: int = 0
