"""
Reconcile buffered query shape counts with the persisted counters.

Delivery is best effort: a crash between the swap and the end of the flush
loses the in-flight snapshot, and an entry that fails to persist is not
re-queued. Counts are index-design hints, not exact figures.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import List

from pymongo.errors import PyMongoError

from ..exceptions import QueryShapePersistenceError
from ..observability import get_logger as get_contextual_logger
from .cache import QueryShapeCache, QueryShapeRecord
from .store import QueryShapeStore

contextual_logger = get_contextual_logger(__name__)


@dataclass
class FlushResult:
    """Outcome of one flush."""

    processed: int = 0
    persisted: int = 0
    errors: List[QueryShapePersistenceError] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def success(self) -> bool:
        return not self.errors


class QueryShapeFlusher:
    """Drains a QueryShapeCache into a QueryShapeStore."""

    def __init__(self, cache: QueryShapeCache, store: QueryShapeStore) -> None:
        self._cache = cache
        self._store = store

    async def _persist(self, record: QueryShapeRecord) -> None:
        try:
            existing = await self._store.find_one(record.ordered_key)
            if existing:
                await self._store.upsert_increment(
                    record.ordered_key,
                    record.occurrence_count,
                    last_seen=record.last_seen,
                )
            else:
                await self._store.upsert_increment(
                    record.ordered_key,
                    record.occurrence_count,
                    record_if_absent=record,
                    last_seen=record.last_seen,
                )
        except PyMongoError as e:
            raise QueryShapePersistenceError(
                f"Failed to persist query shape for '{record.name}': {e}",
                ordered_key=record.ordered_key,
                cause=e,
            ) from e

    async def flush(self) -> FlushResult:
        """
        Swap out the cache and persist every shape in the snapshot.

        Entries are written concurrently and independently. Failures are
        collected in the result rather than raised.
        """
        start_time = time.time()
        snapshot = self._cache.swap()
        result = FlushResult(processed=len(snapshot))

        if not snapshot:
            return result

        records = list(snapshot.values())
        outcomes = await asyncio.gather(
            *(self._persist(record) for record in records), return_exceptions=True
        )

        for record, outcome in zip(records, outcomes):
            if outcome is None:
                result.persisted += 1
            elif isinstance(outcome, QueryShapePersistenceError):
                result.errors.append(outcome)
            elif isinstance(outcome, Exception):
                result.errors.append(
                    QueryShapePersistenceError(
                        f"Unexpected error persisting query shape for '{record.name}': "
                        f"{outcome}",
                        ordered_key=record.ordered_key,
                        cause=outcome,
                    )
                )
            else:
                # CancelledError and other BaseExceptions must not be swallowed
                raise outcome

        result.duration_ms = (time.time() - start_time) * 1000
        if result.errors:
            first = result.errors[0]
            contextual_logger.warning(
                f"{result.failed} of {result.processed} query shape(s) failed to persist; "
                f"first error: {first.message}",
                extra={"failed": result.failed, "first_ordered_key": first.ordered_key},
            )
        return result
