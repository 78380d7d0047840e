"""
MongoDB utility functions for MDB_ADAPTER.

This module provides helpers for working with ObjectIds and making
MongoDB documents JSON-serializable.
"""

from datetime import datetime
from typing import Any

from bson import ObjectId


def new_object_id(value: str | ObjectId | None = None) -> ObjectId:
    """
    Create an ObjectId.

    Args:
        value: Optional 24-character hex string (or ObjectId) to wrap;
            a fresh id is generated when omitted

    Raises:
        bson.errors.InvalidId: If value is not a valid ObjectId
    """
    return ObjectId(value)


def to_object_id(value: Any) -> Any:
    """Convert a valid ObjectId string to ObjectId, leaving anything else as-is."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def clean_mongo_doc(doc: dict[str, Any] | None) -> dict[str, Any] | None:
    """
    Convert MongoDB document to JSON-serializable format.

    Recursively converts MongoDB-specific types to JSON-compatible types:
    - ObjectId -> str
    - datetime -> ISO format string
    - Nested dictionaries and lists are processed recursively

    Args:
        doc: MongoDB document (dict) or None

    Returns:
        Cleaned document, or None if input was None
    """
    if doc is None:
        return None

    if not isinstance(doc, dict):
        return _clean_value(doc)

    return {key: _clean_value(value) for key, value in doc.items()}


def _clean_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return clean_mongo_doc(value)
    if isinstance(value, list):
        return [_clean_value(item) for item in value]
    return value


def clean_mongo_docs(docs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Apply clean_mongo_doc to each document in a list."""
    return [clean_mongo_doc(doc) for doc in docs]
