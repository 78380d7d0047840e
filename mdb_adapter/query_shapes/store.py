"""
Persisted query shape counters.

One document per ordered key in the ``queryShapeCounters`` collection:

    orderedKey       string, unique
    sortedKey        string, indexed
    name             string
    occurrenceCount  integer >= 0
    orderedShape     projection triple the ordered key was built from
    sortedShape      projection triple the sorted key was built from
    firstSeen        first observation
    lastSeen         last flushed observation

Records are created on first flush of a shape and only ever incremented.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING
from pymongo.results import UpdateResult

from ..constants import DEFAULT_TOP_SHAPES_LIMIT, QUERY_SHAPE_COLLECTION
from .cache import QueryShapeRecord

logger = logging.getLogger(__name__)

QUERY_SHAPE_RESOURCE: Dict[str, Any] = {
    "name": QUERY_SHAPE_COLLECTION,
    "fields": {
        "orderedKey": {"type": "string", "required": True, "unique": True},
        "sortedKey": {"type": "string", "required": True, "index": True},
        "name": "string",
        "occurrenceCount": {"type": "integer", "default": 0},
        "orderedShape": "mixed",
        "sortedShape": "mixed",
        "firstSeen": "date",
        "lastSeen": "date",
    },
}
"""Resource descriptor for the counter collection."""


class QueryShapeStore:
    """Document operations on the counter collection."""

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self._collection = collection

    @property
    def collection(self) -> AsyncIOMotorCollection:
        return self._collection

    async def find_one(self, ordered_key: str) -> Optional[Dict[str, Any]]:
        """Look up a persisted counter by ordered key."""
        return await self._collection.find_one(
            {"orderedKey": ordered_key}, projection={"_id": 1, "occurrenceCount": 1}
        )

    async def upsert_increment(
        self,
        ordered_key: str,
        delta: int,
        record_if_absent: Optional[QueryShapeRecord] = None,
        last_seen: Optional[datetime] = None,
    ) -> UpdateResult:
        """
        Atomically add ``delta`` to a counter.

        When ``record_if_absent`` is given the write is an upsert, so a
        counter inserted concurrently by another process is incremented
        rather than duplicated.
        """
        update: Dict[str, Any] = {"$inc": {"occurrenceCount": delta}}
        if last_seen is not None:
            update["$set"] = {"lastSeen": last_seen}

        upsert = record_if_absent is not None
        if upsert:
            on_insert = record_if_absent.to_document()
            on_insert.pop("orderedKey", None)
            update["$setOnInsert"] = on_insert

        return await self._collection.update_one(
            {"orderedKey": ordered_key}, update, upsert=upsert
        )

    async def top_shapes(
        self, limit: int = DEFAULT_TOP_SHAPES_LIMIT, name: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Most frequent persisted shapes, highest count first."""
        query = {"name": name} if name else {}
        cursor = (
            self._collection.find(query, projection={"_id": 0})
            .sort("occurrenceCount", DESCENDING)
            .limit(limit)
        )
        return await cursor.to_list(length=limit)

    async def group_by_sorted_key(
        self, limit: int = DEFAULT_TOP_SHAPES_LIMIT, name: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Sum counts per sorted key, i.e. per underlying index need.

        Each result has ``sortedKey``, ``name``, ``occurrenceCount`` and
        ``variants`` (how many ordered keys collapsed into it).
        """
        pipeline: List[Dict[str, Any]] = []
        if name:
            pipeline.append({"$match": {"name": name}})
        pipeline.extend(
            [
                {
                    "$group": {
                        "_id": "$sortedKey",
                        "name": {"$first": "$name"},
                        "occurrenceCount": {"$sum": "$occurrenceCount"},
                        "variants": {"$sum": 1},
                    }
                },
                {"$sort": {"occurrenceCount": DESCENDING}},
                {"$limit": limit},
                {
                    "$project": {
                        "_id": 0,
                        "sortedKey": "$_id",
                        "name": 1,
                        "occurrenceCount": 1,
                        "variants": 1,
                    }
                },
            ]
        )
        cursor = self._collection.aggregate(pipeline)
        return await cursor.to_list(length=limit)
