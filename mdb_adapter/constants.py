"""
Constants for MDB_ADAPTER.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# CONNECTION CONSTANTS
# ============================================================================

DEFAULT_MAX_POOL_SIZE: Final[int] = 50
"""Default maximum MongoDB connection pool size."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 10
"""Default minimum MongoDB connection pool size."""

DEFAULT_CONNECT_TIMEOUT_MS: Final[int] = 30000
"""Default socket connect timeout in milliseconds."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

DEFAULT_MAX_IDLE_TIME_MS: Final[int] = 45000
"""Default maximum idle time before closing connections (milliseconds)."""

CLIENT_APP_NAME: Final[str] = "MDB_ADAPTER"
"""Application name reported to the MongoDB server."""

# ============================================================================
# DOCUMENT CONSTANTS
# ============================================================================

ID_FIELD: Final[str] = "_id"
"""Reserved primary identifier field."""

VERSION_FIELD: Final[str] = "__v"
"""Document version counter, incremented on every update."""

LEGACY_ID_FIELD: Final[str] = "legacyId"
"""Numeric identifier carried over from the legacy data store."""

LEGACY_ID_MAX_LENGTH: Final[int] = 20
"""Identifiers shorter than this are treated as legacy numeric ids."""

STATUS_FIELD: Final[str] = "status"
CREATE_DATE_FIELD: Final[str] = "createDate"
MODIFY_DATE_FIELD: Final[str] = "modifyDate"

STATUS_CREATED: Final[str] = "created"
STATUS_APPROVED: Final[str] = "approved"
STATUS_DELETED: Final[str] = "deleted"

ACTIVE_STATUSES: Final[tuple[str, ...]] = (STATUS_CREATED, STATUS_APPROVED)
"""Statuses returned by find() when the caller does not ask for a status."""

AUDIT_FIELDS: Final[tuple[str, ...]] = (
    STATUS_FIELD,
    CREATE_DATE_FIELD,
    MODIFY_DATE_FIELD,
    "createUserId",
    "createUsername",
    "createUserCompanyId",
    "modifyUserId",
    "modifyUsername",
    "sysadminDate",
)
"""Fields written by the audit helpers; always accepted by strict models."""

MODIFY_AUDIT_FIELDS: Final[tuple[str, ...]] = (
    MODIFY_DATE_FIELD,
    "modifyUserId",
    "modifyUsername",
    "sysadminDate",
)
"""Fields stamped by set_modified_by; the only data a soft delete writes."""

# ============================================================================
# SYSTEM ADMIN
# ============================================================================

SYSTEM_ADMIN_ID: Final[str] = "000000000000000000000000"
SYSTEM_ADMIN_NAME: Final[str] = "systemAdmin"

# ============================================================================
# QUERY SHAPE TRACKING
# ============================================================================

QUERY_SHAPE_COLLECTION: Final[str] = "queryShapeCounters"
"""Collection holding persisted query shape counters."""

DEFAULT_FLUSH_INTERVAL: Final[float] = 60.0
"""Seconds between query shape flushes."""

DEFAULT_TOP_SHAPES_LIMIT: Final[int] = 20
"""Default number of shapes returned by reports."""

# ============================================================================
# RESOURCE SCHEMA CONSTANTS
# ============================================================================

FIELD_TYPE_STRING: Final[str] = "string"
FIELD_TYPE_NUMBER: Final[str] = "number"
FIELD_TYPE_INTEGER: Final[str] = "integer"
FIELD_TYPE_BOOLEAN: Final[str] = "boolean"
FIELD_TYPE_DATE: Final[str] = "date"
FIELD_TYPE_OBJECT_ID: Final[str] = "objectId"
FIELD_TYPE_MIXED: Final[str] = "mixed"
FIELD_TYPE_ARRAY: Final[str] = "array"
FIELD_TYPE_OBJECT: Final[str] = "object"

SUPPORTED_FIELD_TYPES: Final[tuple[str, ...]] = (
    FIELD_TYPE_STRING,
    FIELD_TYPE_NUMBER,
    FIELD_TYPE_INTEGER,
    FIELD_TYPE_BOOLEAN,
    FIELD_TYPE_DATE,
    FIELD_TYPE_OBJECT_ID,
    FIELD_TYPE_MIXED,
    FIELD_TYPE_ARRAY,
    FIELD_TYPE_OBJECT,
)

MAX_COLLECTION_NAME_LENGTH: Final[int] = 255
"""Maximum length for MongoDB collection names."""

RESERVED_COLLECTION_PREFIXES: Final[tuple[str, ...]] = ("system.",)
"""Collection name prefixes reserved by MongoDB."""
