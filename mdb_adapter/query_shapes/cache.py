"""
In-memory query shape frequency cache.

The cache is a write buffer in front of the persisted counters: the true
count of a shape is its persisted ``occurrenceCount`` plus the delta held
here since the last flush.

Only two mutations are allowed, both under one lock and neither suspends:
get-or-create-then-increment, and swap-for-empty. A flush owns the mapping
it swapped out, so increments arriving during a flush land in the fresh
mapping and are counted exactly once.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .canonical import CanonicalShape


@dataclass
class QueryShapeRecord:
    """Accumulator for one ordered key."""

    ordered_key: str
    sorted_key: str
    name: str
    ordered_shape: Dict[str, Any] = field(default_factory=dict)
    sorted_shape: Dict[str, Any] = field(default_factory=dict)
    occurrence_count: int = 0
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None

    @classmethod
    def from_canonical(cls, canonical: CanonicalShape) -> "QueryShapeRecord":
        return cls(
            ordered_key=canonical.ordered_key,
            sorted_key=canonical.sorted_key,
            name=canonical.shape.name,
            ordered_shape=canonical.ordered_shape,
            sorted_shape=canonical.sorted_shape,
        )

    def to_document(self) -> Dict[str, Any]:
        """Fields written when the record is first persisted."""
        return {
            "orderedKey": self.ordered_key,
            "sortedKey": self.sorted_key,
            "name": self.name,
            "orderedShape": self.ordered_shape,
            "sortedShape": self.sorted_shape,
            "firstSeen": self.first_seen,
        }


class QueryShapeCache:
    """
    Thread-safe mapping from ordered key to accumulated record.

    Example:
        cache = QueryShapeCache()
        cache.increment(canonicalize("posts", {"status": "x"}))
        snapshot = cache.swap()   # flusher now owns snapshot
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, QueryShapeRecord] = {}

    def increment(self, canonical: CanonicalShape) -> int:
        """
        Count one occurrence of a shape.

        Returns:
            The in-memory count for the shape after incrementing
        """
        now = datetime.now(timezone.utc)
        with self._lock:
            record = self._records.get(canonical.ordered_key)
            if record is None:
                record = QueryShapeRecord.from_canonical(canonical)
                record.first_seen = now
                self._records[canonical.ordered_key] = record
            record.occurrence_count += 1
            record.last_seen = now
            return record.occurrence_count

    def swap(self) -> Dict[str, QueryShapeRecord]:
        """Replace the live mapping with an empty one and return the old one."""
        with self._lock:
            snapshot = self._records
            self._records = {}
        return snapshot

    def clear(self) -> None:
        """Drop all accumulated counts without persisting them."""
        with self._lock:
            self._records = {}

    def snapshot(self) -> Dict[str, int]:
        """Copy of the current counts, keyed by ordered key."""
        with self._lock:
            return {key: record.occurrence_count for key, record in self._records.items()}

    def get(self, ordered_key: str) -> Optional[QueryShapeRecord]:
        with self._lock:
            return self._records.get(ordered_key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, ordered_key: object) -> bool:
        with self._lock:
            return ordered_key in self._records
