"""
Index creation for registered resources.

Resource index definitions have the form ``{"fields": {...}, "options": {...}}``
where ``fields`` maps field names to directions and ``options`` are passed to
the driver (``name``, ``unique``, ``sparse``, ``expireAfterSeconds``, ...).

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

import logging
from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import IndexModel
from pymongo.errors import (
    ConnectionFailure,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from .helpers import (
    generate_index_name,
    is_id_index,
    normalize_keys,
    validate_index_definition_basic,
)

logger = logging.getLogger(__name__)


def build_index_models(
    index_definitions: list[dict[str, Any]], log_prefix: str = ""
) -> list[IndexModel]:
    """
    Convert resource index definitions to IndexModels.

    Malformed definitions and ``_id``-only indexes are skipped with a log
    message.
    """
    models: list[IndexModel] = []
    for index_def in index_definitions:
        keys = normalize_keys(index_def.get("fields") or {})
        options = dict(index_def.get("options") or {})
        index_name = options.get("name") or generate_index_name(keys)

        is_valid, error_msg = validate_index_definition_basic(
            index_def, index_name, ["fields"], log_prefix
        )
        if not is_valid:
            logger.error(error_msg)
            continue

        if is_id_index(keys):
            logger.info(
                f"{log_prefix} Skipping '_id' index '{index_name}'. "
                f"MongoDB creates it automatically."
            )
            continue

        options["name"] = index_name
        models.append(IndexModel(keys, **options))
    return models


async def ensure_resource_indexes(
    collection: AsyncIOMotorCollection,
    index_definitions: list[dict[str, Any]],
) -> list[str]:
    """
    Create the given indexes on a collection.

    ``create_indexes`` is a no-op for indexes that already exist with the
    same definition.

    Returns:
        Names of the indexes requested

    Raises:
        OperationFailure: If an index conflicts with an existing one
    """
    log_prefix = f"[{collection.name}]"
    models = build_index_models(index_definitions, log_prefix)
    if not models:
        logger.debug(f"{log_prefix} No indexes to create.")
        return []

    try:
        names = await collection.create_indexes(models)
    except (OperationFailure, ConnectionFailure, ServerSelectionTimeoutError) as e:
        logger.error(f"{log_prefix} Failed to create indexes: {e}", exc_info=True)
        raise

    logger.info(f"{log_prefix} Ensured {len(names)} index(es): {names}")
    return names
