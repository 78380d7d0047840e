"""
Resource descriptors.

A resource is a named collection with a field schema and index definitions:

    {
        "name": "posts",
        "fields": {
            "title": "string",
            "status": {"type": "string", "enum": ["created", "approved", "deleted"]},
            "createDate": "date",
            "views": {"type": "integer", "default": 0, "index": True},
        },
        "indexes": [
            {"fields": {"status": 1, "createDate": -1}, "options": {"name": "status_date"}}
        ],
    }

Descriptors are validated with JSON Schema when registered. Audit
capabilities are computed once here rather than re-checked on each request.

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from jsonschema import SchemaError, ValidationError, validate

from ..constants import (CREATE_DATE_FIELD, MAX_COLLECTION_NAME_LENGTH,
                         MODIFY_DATE_FIELD, STATUS_FIELD,
                         SUPPORTED_FIELD_TYPES)
from ..exceptions import ResourceValidationError

logger = logging.getLogger(__name__)

_FIELD_TYPE_SCHEMA: Dict[str, Any] = {"type": "string", "enum": list(SUPPORTED_FIELD_TYPES)}

RESOURCE_DESCRIPTOR_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {
            "type": "string",
            "minLength": 1,
            "maxLength": MAX_COLLECTION_NAME_LENGTH,
            "not": {"pattern": r"^system\.|\$|\x00"},
        },
        "fields": {
            "type": "object",
            "propertyNames": {"not": {"pattern": r"^\$"}},
            "additionalProperties": {
                "oneOf": [
                    _FIELD_TYPE_SCHEMA,
                    {
                        "type": "object",
                        "required": ["type"],
                        "properties": {
                            "type": _FIELD_TYPE_SCHEMA,
                            "required": {"type": "boolean"},
                            "default": {},
                            "unique": {"type": "boolean"},
                            "index": {"type": "boolean"},
                            "enum": {"type": "array", "minItems": 1},
                        },
                        "additionalProperties": False,
                    },
                ]
            },
        },
        "indexes": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["fields"],
                "properties": {
                    "fields": {
                        "type": "object",
                        "minProperties": 1,
                        "additionalProperties": {
                            "oneOf": [
                                {"type": "integer", "enum": [1, -1]},
                                {"type": "string", "enum": ["text", "2dsphere", "2d", "hashed"]},
                            ]
                        },
                    },
                    "options": {"type": "object"},
                },
                "additionalProperties": False,
            },
        },
    },
}


def validate_resource_descriptor(
    resource: Mapping[str, Any],
) -> Tuple[bool, Optional[str], Optional[List[str]]]:
    """
    Validate a resource descriptor against the descriptor schema.

    Returns:
        Tuple of (is_valid, error_message, error_paths)
    """
    try:
        validate(instance=dict(resource), schema=RESOURCE_DESCRIPTOR_SCHEMA)
        return (True, None, None)
    except ValidationError as e:
        path_parts = list(e.absolute_path)
        error_path = ".".join(str(p) for p in path_parts) if path_parts else "root"
        return (False, e.message, [error_path])
    except SchemaError as e:
        return (False, f"Invalid schema definition: {e.message}", ["schema"])


@dataclass(frozen=True)
class FieldSpec:
    """A single declared field."""

    name: str
    type: str
    required: bool = False
    default: Any = None
    unique: bool = False
    index: bool = False
    enum: Optional[Tuple[Any, ...]] = None

    @classmethod
    def from_definition(cls, name: str, definition: Any) -> "FieldSpec":
        if isinstance(definition, str):
            return cls(name=name, type=definition)
        enum = definition.get("enum")
        return cls(
            name=name,
            type=definition["type"],
            required=definition.get("required", False),
            default=definition.get("default"),
            unique=definition.get("unique", False),
            index=definition.get("index", False),
            enum=tuple(enum) if enum else None,
        )


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    A validated resource with its capability flags.

    Attributes:
        has_status: Resource declares a ``status`` field (soft delete and
            active-status filtering apply)
        supports_create_audit: ``status`` and ``createDate`` are declared
        supports_modify_audit: ``status`` and ``modifyDate`` are declared
    """

    name: str
    fields: Dict[str, FieldSpec] = field(default_factory=dict)
    indexes: Tuple[Dict[str, Any], ...] = ()
    has_status: bool = False
    supports_create_audit: bool = False
    supports_modify_audit: bool = False

    @classmethod
    def from_dict(cls, resource: Mapping[str, Any]) -> "ResourceDescriptor":
        """
        Validate and build a descriptor.

        Raises:
            ResourceValidationError: If the descriptor is malformed
        """
        is_valid, error, error_paths = validate_resource_descriptor(resource)
        if not is_valid:
            name = resource.get("name") if isinstance(resource, Mapping) else None
            raise ResourceValidationError(
                f"Invalid resource descriptor: {error}",
                resource_name=name if isinstance(name, str) else None,
                error_paths=error_paths,
            )

        fields = {
            name: FieldSpec.from_definition(name, definition)
            for name, definition in (resource.get("fields") or {}).items()
        }
        has_status = STATUS_FIELD in fields
        return cls(
            name=resource["name"],
            fields=fields,
            indexes=tuple(resource.get("indexes") or ()),
            has_status=has_status,
            supports_create_audit=has_status and CREATE_DATE_FIELD in fields,
            supports_modify_audit=has_status and MODIFY_DATE_FIELD in fields,
        )

    @property
    def schemaless(self) -> bool:
        return not self.fields

    def index_definitions(self) -> List[Dict[str, Any]]:
        """Single-field indexes declared on fields followed by compound indexes."""
        definitions: List[Dict[str, Any]] = []
        for spec in self.fields.values():
            if spec.unique:
                definitions.append(
                    {"fields": {spec.name: 1}, "options": {"unique": True}}
                )
            elif spec.index:
                definitions.append({"fields": {spec.name: 1}})
        definitions.extend(dict(idx) for idx in self.indexes)
        return definitions
