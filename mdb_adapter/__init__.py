"""
MDB_ADAPTER - MongoDB CRUD adapter

Generic resource CRUD on top of motor, with audit metadata, soft deletion
and query shape analytics for index design.
"""

# Configuration
from .config import AdapterConfig
from .constants import SUPPORTED_FIELD_TYPES
# Core
from .core import (SYSTEM_ADMIN, AdapterEngine, Caller, CrudRequest,
                   MongoAdapter)
# Errors
from .exceptions import (AuditError, ConfigurationError,
                         DocumentValidationError, InitializationError,
                         MissingConditionsError, MongoAdapterError,
                         QueryShapePersistenceError, ResourceValidationError)
# Query shapes
from .query_shapes import QueryShapeTracker, canonicalize
# Resources
from .resources import ResourceDescriptor, ResourceRegistry
from .utils import new_object_id

__version__ = "0.1.0"

FieldTypes = SUPPORTED_FIELD_TYPES
"""Field types accepted in resource descriptors."""

__all__ = [
    # Core
    "AdapterEngine",
    "MongoAdapter",
    "CrudRequest",
    "Caller",
    "SYSTEM_ADMIN",
    "AdapterConfig",
    # Resources
    "ResourceDescriptor",
    "ResourceRegistry",
    "FieldTypes",
    "new_object_id",
    # Query shapes
    "QueryShapeTracker",
    "canonicalize",
    # Errors
    "MongoAdapterError",
    "InitializationError",
    "ConfigurationError",
    "ResourceValidationError",
    "DocumentValidationError",
    "AuditError",
    "MissingConditionsError",
    "QueryShapePersistenceError",
]
