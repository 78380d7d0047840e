"""
Query shape analytics.

Counts how often each distinct (fields, sort) query shape is issued per
resource, to inform index design.
"""

from .cache import QueryShapeCache, QueryShapeRecord
from .canonical import (CanonicalShape, QueryShape, canonicalize,
                        is_identifier_lookup, normalize_sort)
from .flusher import FlushResult, QueryShapeFlusher
from .store import QUERY_SHAPE_RESOURCE, QueryShapeStore
from .tracker import QueryShapeTracker

__all__ = [
    "QueryShape",
    "CanonicalShape",
    "canonicalize",
    "is_identifier_lookup",
    "normalize_sort",
    "QueryShapeCache",
    "QueryShapeRecord",
    "QueryShapeStore",
    "QUERY_SHAPE_RESOURCE",
    "QueryShapeFlusher",
    "FlushResult",
    "QueryShapeTracker",
]
