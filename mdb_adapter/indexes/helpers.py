"""
Helper functions for index management.

This module contains shared utility functions used when turning resource
index definitions into driver index models.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def normalize_keys(
    keys: dict[str, Any] | list[tuple[str, Any]] | list[list[Any]],
) -> list[tuple[str, Any]]:
    """
    Normalize index keys to a list of (field_name, direction) tuples.

    Args:
        keys: Index keys as dict or list of pairs
    """
    if isinstance(keys, dict):
        return [(k, v) for k, v in keys.items()]
    return [(k, v) for k, v in keys]


def is_id_index(keys: dict[str, Any] | list[tuple[str, Any]]) -> bool:
    """
    Check if index keys target only the _id field (which MongoDB creates automatically).

    Args:
        keys: Index keys to check
    """
    normalized = normalize_keys(keys)
    return len(normalized) == 1 and normalized[0][0] == "_id"


def generate_index_name(keys: list[tuple[str, Any]]) -> str:
    """Default index name in MongoDB's own ``field_direction`` format."""
    return "_".join(f"{field}_{direction}" for field, direction in keys)


def validate_index_definition_basic(
    index_def: dict[str, Any],
    index_name: str,
    required_fields: list[str],
    log_prefix: str = "",
) -> tuple[bool, str | None]:
    """
    Basic validation for index definitions.

    Args:
        index_def: Index definition dictionary
        index_name: Name of the index
        required_fields: List of required field names
        log_prefix: Logging prefix

    Returns:
        Tuple of (is_valid, error_message)
    """
    for field in required_fields:
        if field not in index_def or not index_def[field]:
            return (
                False,
                f"{log_prefix} Missing '{field}' field on index '{index_name}'. "
                f"Index requires a '{field}' field. Skipping this index definition.",
            )
    return (True, None)
