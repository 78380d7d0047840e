"""
Index management for registered resources.
"""

from .helpers import (generate_index_name, is_id_index, normalize_keys,
                      validate_index_definition_basic)
from .manager import build_index_models, ensure_resource_indexes

__all__ = [
    "build_index_models",
    "ensure_resource_indexes",
    "generate_index_name",
    "is_id_index",
    "normalize_keys",
    "validate_index_definition_basic",
]
