"""
JSON Schema validation service.

Wraps the ``jsonschema`` engine, pinned to one draft for the life of the
dispatcher, and normalizes its output into a ``ValidationResult``:
- every violation is reported, not just the first one
- a schema the engine cannot use is an invalid result, not an exception
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable

import jsonschema
from jsonschema.exceptions import SchemaError

from schema_gateway.config import settings
from schema_gateway.schemas.rpc import JSONValue

if TYPE_CHECKING:
    from schema_gateway.services.registry import SchemaRegistry

logger = logging.getLogger(__name__)

DRAFTS: dict[str, type] = {
    "draft4": jsonschema.Draft4Validator,
    "draft6": jsonschema.Draft6Validator,
    "draft7": jsonschema.Draft7Validator,
    "draft2019-09": jsonschema.Draft201909Validator,
    "draft2020-12": jsonschema.Draft202012Validator,
}

PARSE_SCHEMA_PREFIX = "Parse schema error: "


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> ValidationResult:
        return cls(valid=not errors, errors=errors)

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


def instance_pointer(path: Iterable[Any]) -> str:
    """RFC 6901 pointer for an engine instance path; "" is the document root."""
    return "".join("/" + str(part).replace("~", "~0").replace("/", "~1") for part in path)


def format_error(error: jsonschema.ValidationError) -> str:
    return f"{error.message} (path: {instance_pointer(error.absolute_path)})"


def _describe(exc: Exception) -> str:
    # SchemaError's str() embeds the whole meta-schema; .message is the summary.
    return getattr(exc, "message", None) or str(exc)


class ValidationDispatcher:
    def __init__(self, draft: str | None = None):
        name = draft or settings.JSON_SCHEMA_DRAFT
        if name not in DRAFTS:
            raise ValueError(f"Unsupported JSON Schema draft: {name}")
        self.draft = name
        self._validator_cls = DRAFTS[name]

    def compile(self, schema: JSONValue):
        """Build a validator for ``schema``; raises ``SchemaError`` if malformed."""
        self._validator_cls.check_schema(schema)
        return self._validator_cls(schema)

    def check_schema(self, schema: JSONValue) -> str | None:
        """Return a description of what is wrong with ``schema``, or None."""
        try:
            self._validator_cls.check_schema(schema)
        except SchemaError as exc:
            return _describe(exc)
        return None

    def validate(self, schema: JSONValue, document: JSONValue) -> ValidationResult:
        logger.info("Starting JSON validation with provided schema")
        logger.debug("Schema: %s, Data: %s", schema, document)
        try:
            validator = self.compile(schema)
            errors = [format_error(error) for error in validator.iter_errors(document)]
        except Exception as exc:
            # Unusable schemas (bad meta-schema, unresolvable $ref, broken
            # pattern) surface here, sometimes only while iterating.
            logger.error("Exception during JSON validation: %s", _describe(exc))
            return ValidationResult(valid=False, errors=[PARSE_SCHEMA_PREFIX + _describe(exc)])

        if errors:
            logger.warning("JSON validation failed with %d errors", len(errors))
        else:
            logger.info("JSON validation completed - VALID")
        return ValidationResult.from_errors(errors)

    def validate_by_id(
        self, registry: SchemaRegistry, schema_id: int, document: JSONValue
    ) -> ValidationResult:
        logger.info("Starting JSON validation with schema ID: %s", schema_id)
        record = registry.get_by_id(schema_id)
        if record is None:
            logger.warning("Schema with ID %s not found", schema_id)
            return ValidationResult(valid=False, errors=[f"Schema with ID {schema_id} not found"])
        return self.validate(record.schema, document)
