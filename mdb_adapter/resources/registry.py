"""
Resource models and the model registry.

``ResourceRegistry.get_model`` turns a resource descriptor into a cached
``ResourceModel``: the motor collection plus a compiled JSON Schema of the
declared fields. Models are strict: undeclared fields are dropped from new
documents, declared ones are type-checked and defaults are applied.

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

from bson import ObjectId
from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match
from jsonschema.validators import extend
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase

from ..constants import (AUDIT_FIELDS, FIELD_TYPE_DATE, FIELD_TYPE_MIXED,
                         FIELD_TYPE_OBJECT_ID, ID_FIELD, VERSION_FIELD)
from ..exceptions import DocumentValidationError
from ..indexes import ensure_resource_indexes
from .descriptor import FieldSpec, ResourceDescriptor

logger = logging.getLogger(__name__)

# JSON Schema has no notion of BSON dates or ObjectIds; teach the validator both
_type_checker = Draft7Validator.TYPE_CHECKER.redefine_many(
    {
        FIELD_TYPE_DATE: lambda checker, instance: isinstance(instance, (datetime, date)),
        FIELD_TYPE_OBJECT_ID: lambda checker, instance: isinstance(instance, ObjectId),
    }
)
DocumentValidator = extend(Draft7Validator, type_checker=_type_checker)

_ALWAYS_ALLOWED = frozenset((ID_FIELD, VERSION_FIELD, *AUDIT_FIELDS))


def _field_schema(spec: FieldSpec) -> Dict[str, Any]:
    if spec.type == FIELD_TYPE_MIXED:
        schema: Dict[str, Any] = {}
    elif spec.required:
        schema = {"type": spec.type}
    else:
        schema = {"type": [spec.type, "null"]}
    if spec.enum:
        schema["enum"] = list(spec.enum) + ([] if spec.required else [None])
    return schema


def build_document_schema(descriptor: ResourceDescriptor) -> Dict[str, Any]:
    """JSON Schema that documents of a resource must satisfy."""
    return {
        "type": "object",
        "properties": {name: _field_schema(spec) for name, spec in descriptor.fields.items()},
        "required": [name for name, spec in descriptor.fields.items() if spec.required],
    }


class ResourceModel:
    """
    A registered resource bound to its collection.

    The collection is resolved lazily so models can be built before the
    connection is established.
    """

    def __init__(
        self,
        descriptor: ResourceDescriptor,
        database_provider: Callable[[], AsyncIOMotorDatabase],
    ) -> None:
        self.descriptor = descriptor
        self._database_provider = database_provider
        self._validator = DocumentValidator(build_document_schema(descriptor))

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def collection(self) -> AsyncIOMotorCollection:
        return self._database_provider()[self.descriptor.name]

    def prepare_document(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Apply defaults, strip undeclared fields and validate a new document.

        Raises:
            DocumentValidationError: If a declared field has the wrong type,
                a required field is missing, or a value is outside its enum
        """
        document = dict(data)
        if self.descriptor.schemaless:
            return document

        for name, spec in self.descriptor.fields.items():
            if name not in document and spec.default is not None:
                document[name] = spec.default() if callable(spec.default) else spec.default

        dropped = [
            key
            for key in document
            if key not in self.descriptor.fields and key not in _ALWAYS_ALLOWED
        ]
        for key in dropped:
            del document[key]
        if dropped:
            logger.debug(f"[{self.name}] Dropped undeclared fields: {dropped}")

        error = best_match(self._validator.iter_errors(document))
        if error is not None:
            field_path = ".".join(str(p) for p in error.absolute_path) or None
            raise DocumentValidationError(
                f"Document failed validation for '{self.name}': {error.message}",
                resource_name=self.name,
                field_path=field_path,
            )
        return document


class ResourceRegistry:
    """
    Cache of ResourceModels keyed by resource name.

    Example:
        registry = ResourceRegistry(lambda: connection.mongo_db)
        model = registry.get_model({"name": "posts", "fields": {"title": "string"}})
        await registry.ensure_indexes("posts")
    """

    def __init__(
        self, database_provider: Optional[Callable[[], AsyncIOMotorDatabase]] = None
    ) -> None:
        self._database_provider = database_provider
        self._models: Dict[str, ResourceModel] = {}

    def attach_database(self, database_provider: Callable[[], AsyncIOMotorDatabase]) -> None:
        self._database_provider = database_provider

    def _database(self) -> AsyncIOMotorDatabase:
        if self._database_provider is None:
            raise RuntimeError("ResourceRegistry has no database. Initialize the engine first.")
        return self._database_provider()

    @property
    def models(self) -> Dict[str, ResourceModel]:
        return dict(self._models)

    def get_model(
        self, resource: Union[Mapping[str, Any], ResourceDescriptor]
    ) -> ResourceModel:
        """
        Return the cached model for a resource, registering it on first use.

        Raises:
            ResourceValidationError: If the descriptor is invalid
        """
        if isinstance(resource, ResourceDescriptor):
            descriptor = resource
        else:
            name = resource.get("name") if isinstance(resource, Mapping) else None
            if isinstance(name, str) and name in self._models:
                return self._models[name]
            descriptor = ResourceDescriptor.from_dict(resource)

        model = self._models.get(descriptor.name)
        if model is None:
            model = ResourceModel(descriptor, self._database)
            self._models[descriptor.name] = model
            logger.debug(f"Registered resource model '{descriptor.name}'")
        return model

    def clear_cache(self) -> None:
        """Forget all registered models."""
        self._models = {}

    async def ensure_indexes(self, name: str) -> list[str]:
        """
        Create the indexes declared by a registered resource.

        Raises:
            KeyError: If the resource is not registered
        """
        model = self._models[name]
        return await ensure_resource_indexes(
            model.collection, model.descriptor.index_definitions()
        )

    async def ensure_all_indexes(self) -> Dict[str, list[str]]:
        """Create declared indexes for every registered resource."""
        return {name: await self.ensure_indexes(name) for name in list(self._models)}
