"""
JSON-RPC 2.0 gateway in front of the schema registry and validator.

Each request goes through the same stages: parse the body, check the
envelope, route by method, extract named params, execute, and serialize a
response envelope. Every outcome, including unexpected faults inside a
handler, comes back as a JSON-RPC envelope; nothing escapes ``handle``.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from schema_gateway.api.errors import (
    ID_ALREADY_IN_USE,
    ID_DOES_NOT_EXIST,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPCError,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    SCHEMA_DOES_NOT_EXIST,
    SCHEMA_PARSE_ERROR,
)
from schema_gateway.schemas.rpc import (
    JSONRPC_VERSION,
    RPCErrorResponse,
    RPCRequest,
    RPCSuccessResponse,
    RequestId,
    SaveSchemaParams,
    SchemaIdParams,
    UpdateSchemaParams,
    ValidateByIdParams,
    ValidateParams,
)
from schema_gateway.services.registry import IdAlreadyInUse, SchemaRegistry
from schema_gateway.services.validation import ValidationDispatcher

logger = logging.getLogger(__name__)

# Methods that take no arguments and may omit "params".
ZERO_ARG_METHODS = frozenset({"getAllSchemas", "getAllSchemasMetadata"})

_RAW_ID_PATTERN = re.compile(
    r'"id"\s*:\s*("(?:[^"\\]|\\.)*"|-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?|true|false)'
)

# Bodies that fail to decode for any of these reasons are a parse error.
DECODE_ERRORS = (ValueError, TypeError, RecursionError)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"{text} is out of range")
    return value


def loads(raw: bytes | str) -> Any:
    """Strict JSON decoding: no NaN/Infinity, no numbers that overflow to inf."""
    return json.loads(raw, parse_constant=_reject_constant, parse_float=_finite_float)


def _top_level_id(text: str) -> str | None:
    """Raw text of the first "id" member of the outermost object, if any."""
    depth = 0
    in_string = escaped = False
    for pos, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            if depth == 1:
                match = _RAW_ID_PATTERN.match(text, pos)
                if match is not None:
                    return match.group(1)
            in_string = True
        elif char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
    return None


def extract_request_id(raw: bytes | str) -> RequestId:
    """Best-effort recovery of a scalar "id" from a body that failed to parse."""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    try:
        payload = loads(text)
    except DECODE_ERRORS:
        raw_id = _top_level_id(text)
        if raw_id is None:
            return None
        try:
            payload = {"id": loads(raw_id)}
        except DECODE_ERRORS:
            return None
    if isinstance(payload, dict):
        value = payload.get("id")
        if isinstance(value, (str, int, float, bool)):
            return value
    return None


def _params_error(exc: ValidationError) -> JSONRPCError:
    errors = exc.errors()
    missing = [str(err["loc"][0]) for err in errors if err["type"] == "missing"]
    if missing:
        noun = "parameter" if len(missing) == 1 else "parameters"
        return INVALID_PARAMS(f"Missing {' or '.join(missing)} {noun}")
    first = errors[0]
    if first["type"] == "value_error":
        return INVALID_PARAMS(str(first["ctx"]["error"]))
    field = ".".join(str(part) for part in first["loc"])
    return INVALID_PARAMS(f"Invalid {field} parameter: {first['msg']}")


class ProtocolGateway:
    def __init__(self, registry: SchemaRegistry, dispatcher: ValidationDispatcher):
        self.registry = registry
        self.dispatcher = dispatcher
        self._handlers: dict[str, Callable[[dict[str, Any]], Any]] = {
            "validate": self._validate,
            "validateById": self._validate_by_id,
            "saveSchema": self._save_schema,
            "getAllSchemas": self._get_all_schemas,
            "getSchema": self._get_schema,
            "getAllSchemasMetadata": self._get_all_schemas_metadata,
            "updateSchema": self._update_schema,
            "deleteSchema": self._delete_schema,
            "schemaExists": self._schema_exists,
        }

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def handle(self, raw: bytes | str) -> dict[str, Any]:
        """Turn one raw request body into one response envelope (as a dict)."""
        try:
            return self._handle(raw)
        except Exception as exc:
            logger.exception("Unexpected error while handling JSON-RPC request")
            return self._error_response(INTERNAL_ERROR(f"Internal error: {exc}"), None)

    def _handle(self, raw: bytes | str) -> dict[str, Any]:
        try:
            payload = loads(raw)
        except DECODE_ERRORS as exc:
            logger.warning("Unparseable JSON-RPC body: %s", exc)
            return self._error_response(PARSE_ERROR(), extract_request_id(raw))

        request_id: RequestId = None
        try:
            request = self._parse_envelope(payload)
            request_id = request.id
            result = self._dispatch(request)
        except JSONRPCError as error:
            if request_id is None:
                request_id = self._echo_id(payload)
            return self._error_response(error, request_id)
        except Exception as exc:
            logger.exception("Unexpected error while handling JSON-RPC request")
            return self._error_response(INTERNAL_ERROR(f"Internal error: {exc}"), self._echo_id(payload))
        return RPCSuccessResponse(result=result, id=request_id).model_dump()

    # ------------------------------------------------------------------
    # Envelope checks
    # ------------------------------------------------------------------

    @staticmethod
    def _echo_id(payload: Any) -> RequestId:
        if isinstance(payload, dict):
            value = payload.get("id")
            if isinstance(value, (str, int, float, bool)):
                return value
        return None

    @staticmethod
    def _parse_envelope(payload: Any) -> RPCRequest:
        if not isinstance(payload, dict) or payload.get("jsonrpc") != JSONRPC_VERSION:
            raise PARSE_ERROR()

        method = payload.get("method")
        if not isinstance(method, str) or not method.strip():
            raise INVALID_REQUEST()
        if payload.get("id") is None:
            raise INVALID_REQUEST("Missing id field")

        try:
            return RPCRequest.model_validate(payload)
        except ValidationError as exc:
            locations = {err["loc"][0] for err in exc.errors() if err["loc"]}
            if "params" in locations:
                raise INVALID_PARAMS("Invalid params", "params must be an object of named parameters")
            raise INVALID_REQUEST("Invalid Request", "id must be a string, number or boolean")

    def _dispatch(self, request: RPCRequest) -> Any:
        method = request.method
        if method not in ZERO_ARG_METHODS and request.params is None:
            raise INVALID_PARAMS()

        handler = self._handlers.get(method)
        if handler is None:
            logger.warning("Unknown JSON-RPC method: %s", method)
            raise METHOD_NOT_FOUND()

        logger.info("Dispatching JSON-RPC method '%s' (id=%r)", method, request.id)
        try:
            return handler(request.params or {})
        except JSONRPCError:
            raise
        except Exception as exc:
            logger.exception("Unhandled error in method '%s'", method)
            raise INTERNAL_ERROR(f"Internal error: {exc}")

    @staticmethod
    def _params(model: type[BaseModel], params: dict[str, Any]) -> Any:
        # A null value counts as an absent parameter.
        present = {key: value for key, value in params.items() if value is not None}
        try:
            return model.model_validate(present)
        except ValidationError as exc:
            raise _params_error(exc)

    def _error_response(self, error: JSONRPCError, request_id: RequestId) -> dict[str, Any]:
        return RPCErrorResponse(error=error.to_dict(), id=request_id).model_dump()

    # ------------------------------------------------------------------
    # Method handlers
    # ------------------------------------------------------------------

    def _validate(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self._params(ValidateParams, params)
        return self.dispatcher.validate(args.schema_body, args.document).to_dict()

    def _validate_by_id(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self._params(ValidateByIdParams, params)
        return self.dispatcher.validate_by_id(self.registry, args.schema_id, args.document).to_dict()

    def _save_schema(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self._params(SaveSchemaParams, params)
        problem = self.dispatcher.check_schema(args.schema_body)
        if problem is not None:
            raise SCHEMA_PARSE_ERROR(problem)
        try:
            schema_id = self.registry.save(args.name, args.schema_body, args.schema_id)
        except IdAlreadyInUse as exc:
            raise ID_ALREADY_IN_USE(exc.schema_id)
        return {"schemaId": schema_id}

    def _get_all_schemas(self, params: dict[str, Any]) -> dict[str, Any]:
        schemas = [record.to_dict() for record in self.registry.list_all()]
        return {"totalSchemas": len(schemas), "schemas": schemas}

    def _get_schema(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self._params(SchemaIdParams, params)
        record = self.registry.get(args.schema_id)
        if record is None:
            raise ID_DOES_NOT_EXIST(args.schema_id)
        return record.to_dict()

    def _get_all_schemas_metadata(self, params: dict[str, Any]) -> dict[str, Any]:
        schemas = [item.to_dict() for item in self.registry.list_metadata()]
        return {"totalSchemas": len(schemas), "schemas": schemas}

    def _update_schema(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self._params(UpdateSchemaParams, params)
        problem = self.dispatcher.check_schema(args.schema_body)
        if problem is not None:
            raise SCHEMA_PARSE_ERROR(problem)
        if not self.registry.update(args.schema_id, args.schema_body):
            raise SCHEMA_DOES_NOT_EXIST(args.schema_id)
        return {"schemaId": args.schema_id, "updated": True}

    def _delete_schema(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self._params(SchemaIdParams, params)
        return {"schemaId": args.schema_id, "deleted": self.registry.delete(args.schema_id)}

    def _schema_exists(self, params: dict[str, Any]) -> dict[str, Any]:
        args = self._params(SchemaIdParams, params)
        return {"schemaId": args.schema_id, "exists": self.registry.exists(args.schema_id)}
