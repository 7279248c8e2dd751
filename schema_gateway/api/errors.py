from typing import Any
from dataclasses import dataclass

# Standard JSON-RPC 2.0 codes
PARSE_JSON_ERROR = -32700
INVALID_REQUEST_CODE = -32600
METHOD_NOT_FOUND_CODE = -32601
INVALID_PARAMS_CODE = -32602
INTERNAL_ERROR_CODE = -32603

# Service-specific codes
PARSE_SCHEMA_ERROR = -32701
ID_ALREADY_IN_USE_CODE = -32800
ID_DOES_NOT_EXIST_CODE = -32801
SCHEMA_DOES_NOT_EXIST_CODE = -32802


@dataclass
class JSONRPCError(Exception):
    code: int
    message: str
    data: Any = None

    def __str__(self):
        return self.message

    def to_dict(self):
        base = {"code": self.code, "message": self.message}
        if self.data is not None:
            base["data"] = self.data
        return base


PARSE_ERROR = lambda d=None: JSONRPCError(PARSE_JSON_ERROR, "Parse error", d)
INVALID_REQUEST = lambda m="Invalid Request", d=None: JSONRPCError(INVALID_REQUEST_CODE, m, d)
METHOD_NOT_FOUND = lambda d=None: JSONRPCError(METHOD_NOT_FOUND_CODE, "Method not found", d)
INVALID_PARAMS = lambda m="Invalid params", d=None: JSONRPCError(INVALID_PARAMS_CODE, m, d)
INTERNAL_ERROR = lambda m="Internal error", d=None: JSONRPCError(INTERNAL_ERROR_CODE, m, d)
SCHEMA_PARSE_ERROR = lambda detail: JSONRPCError(PARSE_SCHEMA_ERROR, f"Parse schema error: {detail}")
ID_ALREADY_IN_USE = lambda schema_id: JSONRPCError(ID_ALREADY_IN_USE_CODE, f"ID {schema_id} already in use")
ID_DOES_NOT_EXIST = lambda schema_id: JSONRPCError(ID_DOES_NOT_EXIST_CODE, f"Schema with ID {schema_id} not found")
SCHEMA_DOES_NOT_EXIST = lambda schema_id: JSONRPCError(
    SCHEMA_DOES_NOT_EXIST_CODE, f"Schema with ID {schema_id} does not exist"
)
