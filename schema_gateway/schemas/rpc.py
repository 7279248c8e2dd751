"""Pydantic models for the JSON-RPC 2.0 envelope and per-method params."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Any JSON document: schema bodies and instance documents alike.
JSONValue = Union[None, bool, int, float, str, List["JSONValue"], Dict[str, "JSONValue"]]

RequestId = Union[str, int, float, bool, None]

JSONRPC_VERSION = "2.0"
INVALID_SCHEMA_ID = "Invalid schema ID format. Must be a number."


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------

class RPCRequest(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    method: str
    params: Optional[Dict[str, Any]] = None
    id: RequestId


class RPCSuccessResponse(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    result: Any
    id: RequestId = None


class RPCErrorResponse(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    error: Dict[str, Any]
    id: RequestId = None


# ---------------------------------------------------------------------------
# Method params (named only; wire names are the aliases)
# ---------------------------------------------------------------------------

class _Params(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def _coerce_schema_id(value: Any) -> int:
    """Accept integers and integral numeric strings; reject everything else."""
    if isinstance(value, bool):
        raise ValueError(INVALID_SCHEMA_ID)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise ValueError(INVALID_SCHEMA_ID) from None
    raise ValueError(INVALID_SCHEMA_ID)


class _SchemaIdParams(_Params):
    schema_id: int = Field(alias="schemaId")

    @field_validator("schema_id", mode="before")
    @classmethod
    def check_schema_id(cls, value: Any) -> int:
        return _coerce_schema_id(value)


class ValidateParams(_Params):
    schema_body: Any = Field(alias="schema")
    document: Any = Field(alias="json")


class ValidateByIdParams(_SchemaIdParams):
    document: Any = Field(alias="json")


class SaveSchemaParams(_Params):
    name: str
    schema_body: Any = Field(alias="schema")
    schema_id: Optional[int] = Field(default=None, alias="schemaId")

    @field_validator("schema_id", mode="before")
    @classmethod
    def check_schema_id(cls, value: Any) -> Optional[int]:
        return None if value is None else _coerce_schema_id(value)


class UpdateSchemaParams(_SchemaIdParams):
    schema_body: Any = Field(alias="schema")


class SchemaIdParams(_SchemaIdParams):
    pass
