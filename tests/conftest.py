"""
Pytest configuration and shared fixtures for MDB_ADAPTER tests.

This module provides:
- Mock MongoDB client, database and collection fixtures
- Resource descriptor and caller factories
- Metrics isolation between tests
"""

from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
from motor.motor_asyncio import (AsyncIOMotorClient, AsyncIOMotorCollection,
                                 AsyncIOMotorDatabase)

from mdb_adapter.observability import get_metrics_collector
from mdb_adapter.resources import ResourceRegistry

# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================


def make_cursor(docs=None) -> MagicMock:
    """Motor-style cursor: chainable sort/limit/skip, awaitable to_list."""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.to_list = AsyncMock(return_value=list(docs or []))
    return cursor


def make_collection(name: str = "test_collection") -> MagicMock:
    """
    Create a mock collection.

    ``find`` and ``aggregate`` are synchronous in motor and return cursors;
    everything else is a coroutine.
    """
    collection = MagicMock(spec=AsyncIOMotorCollection)
    collection.name = name
    collection.find = MagicMock(return_value=make_cursor())
    collection.aggregate = MagicMock(return_value=make_cursor())
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id="test_id"))
    collection.insert_many = AsyncMock(return_value=MagicMock(inserted_ids=["id1", "id2"]))
    collection.update_one = AsyncMock(
        return_value=MagicMock(matched_count=1, modified_count=1, upserted_id=None)
    )
    collection.update_many = AsyncMock(
        return_value=MagicMock(matched_count=2, modified_count=2, upserted_id=None)
    )
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=2))
    collection.count_documents = AsyncMock(return_value=0)
    collection.create_indexes = AsyncMock(
        side_effect=lambda models: [m.document["name"] for m in models]
    )
    return collection


@pytest.fixture
def cursor_factory():
    """Factory for motor-style cursors returning the given documents."""
    return make_cursor


@pytest.fixture
def mock_mongo_collection() -> MagicMock:
    """Create a mock MongoDB collection."""
    return make_collection()


@pytest.fixture
def mock_mongo_database() -> MagicMock:
    """Mock database handing out one cached mock collection per name."""
    db = MagicMock(spec=AsyncIOMotorDatabase)
    db.name = "test_db"
    collections: Dict[str, MagicMock] = {}

    def get_collection(name: str) -> MagicMock:
        if name not in collections:
            collections[name] = make_collection(name)
        return collections[name]

    db.__getitem__.side_effect = get_collection
    return db


@pytest.fixture
def mock_mongo_client(mock_mongo_database: MagicMock) -> MagicMock:
    """Create a mock MongoDB client whose databases are mock_mongo_database."""
    client = MagicMock(spec=AsyncIOMotorClient)
    client.admin = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    client.__getitem__.return_value = mock_mongo_database
    return client


@pytest.fixture
def registry(mock_mongo_database: MagicMock) -> ResourceRegistry:
    """ResourceRegistry bound to the mock database."""
    return ResourceRegistry(lambda: mock_mongo_database)


# ============================================================================
# DATA FACTORIES
# ============================================================================


@pytest.fixture
def posts_resource() -> Dict[str, Any]:
    """Resource with status and both audit dates (full audit support)."""
    return {
        "name": "posts",
        "fields": {
            "title": {"type": "string", "required": True},
            "name": "string",
            "views": {"type": "integer", "default": 0, "index": True},
            "status": {"type": "string", "enum": ["created", "approved", "deleted"]},
            "createDate": "date",
            "modifyDate": "date",
            "tags": "array",
        },
        "indexes": [{"fields": {"status": 1, "createDate": -1}}],
    }


@pytest.fixture
def plain_resource() -> Dict[str, Any]:
    """Resource without status or audit fields."""
    return {"name": "events", "fields": {"kind": "string", "payload": "mixed"}}


@pytest.fixture
def caller() -> Dict[str, Any]:
    """A regular user caller in wire format."""
    return {"_id": "u1", "name": "jeff", "type": "user", "role": "user"}


# ============================================================================
# ISOLATION
# ============================================================================


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset the global metrics collector around each test."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()
