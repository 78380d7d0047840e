"""
Query shape tracking.

``QueryShapeTracker`` ties the canonicalizer, the in-memory cache and the
flusher together. It is constructed and owned by ``AdapterEngine``; there is
no module-level cache.

Flush cadence:

- ``start()`` runs a background task that flushes every ``flush_interval``
  seconds. This is the normal mode and keeps persistence off the request path.
- Without a running worker, ``record()`` triggers a fire-and-forget flush
  itself once ``flush_interval`` has elapsed since the last one.

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

import asyncio
import contextlib
import logging
import time
from typing import Any, Callable, Mapping, Optional

from ..constants import DEFAULT_FLUSH_INTERVAL, QUERY_SHAPE_COLLECTION
from ..exceptions import ConfigurationError
from ..observability import get_logger as get_contextual_logger
from ..observability import operation_context, record_operation
from ..utils.tasks import create_managed_task
from .cache import QueryShapeCache
from .canonical import SortSpec, canonicalize, is_identifier_lookup
from .flusher import FlushResult, QueryShapeFlusher
from .store import QueryShapeStore

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class QueryShapeTracker:
    """
    Counts how often each query shape is issued and persists the counts.

    Example:
        tracker = QueryShapeTracker(store, flush_interval=60)
        tracker.start()
        tracker.record("posts", {"status": "x"}, {"createDate": -1})
        ...
        await tracker.stop()
    """

    def __init__(
        self,
        store: Optional[QueryShapeStore] = None,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if flush_interval <= 0:
            raise ConfigurationError(
                "flush_interval must be positive",
                config_key="query_shape_flush_interval",
                config_value=flush_interval,
            )
        self._store = store
        self._flush_interval = flush_interval
        self._enabled = enabled
        self._clock = clock
        self._cache = QueryShapeCache()
        self._last_flush = clock()
        self._worker: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._last_result: Optional[FlushResult] = None

    @property
    def cache(self) -> QueryShapeCache:
        return self._cache

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def flush_interval(self) -> float:
        return self._flush_interval

    @property
    def last_result(self) -> Optional[FlushResult]:
        """Result of the most recent flush, for operational monitoring."""
        return self._last_result

    @property
    def running(self) -> bool:
        """True while the scheduled flush worker is active."""
        return self._worker is not None and not self._worker.done()

    def attach_store(self, store: QueryShapeStore) -> None:
        """Set the persistence target once the connection is available."""
        self._store = store

    def record(
        self,
        name: str,
        where: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
    ) -> Optional[int]:
        """
        Count one occurrence of a query shape.

        Args:
            name: Resource name
            where: Query filter
            sort: Sort specification

        Returns:
            The in-memory count after incrementing, or None if nothing was
            recorded (tracking disabled or identifier lookup)

        Raises:
            ConfigurationError: If no resource name is given
        """
        if not name:
            raise ConfigurationError("A resource name is required to record a query shape")
        if not self._enabled or is_identifier_lookup(where):
            return None

        count = self._cache.increment(canonicalize(name, where, sort))

        if not self.running and self._store is not None:
            now = self._clock()
            if now - self._last_flush > self._flush_interval:
                # Reset before scheduling so concurrent records don't double-trigger
                self._last_flush = now
                create_managed_task(self.flush(), task_name="query_shape_flush")

        return count

    def clear(self) -> None:
        """Reset the in-memory counts without persisting them."""
        self._cache.clear()

    async def flush(self) -> FlushResult:
        """
        Persist everything accumulated since the last flush.

        Never raises for persistence failures; they are reported in the
        returned FlushResult.
        """
        if self._store is None:
            logger.debug("Query shape flush skipped - no store attached")
            return FlushResult()

        self._last_flush = self._clock()
        with operation_context(QUERY_SHAPE_COLLECTION, "query_shapes.flush"):
            result = await QueryShapeFlusher(self._cache, self._store).flush()
            self._last_result = result

            if result.processed:
                record_operation(
                    "query_shapes.flush", result.duration_ms, success=result.success
                )
                contextual_logger.info(
                    "Flushed query shapes",
                    extra={
                        "processed": result.processed,
                        "persisted": result.persisted,
                        "failed": result.failed,
                        "duration_ms": round(result.duration_ms, 2),
                    },
                )
        return result

    async def _run(self) -> None:
        logger.info(f"Query shape flush worker started (interval={self._flush_interval}s)")
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(self._flush_interval)
            # A swapped-out snapshot must be persisted even if the worker is cancelled
            self._in_flight = loop.create_task(self.flush(), name="query_shape_flush")
            await asyncio.shield(self._in_flight)

    def start(self) -> None:
        """Start the scheduled flush worker. Must be called from a running loop."""
        if self.running:
            return
        self._worker = asyncio.get_running_loop().create_task(
            self._run(), name="query_shape_flush_worker"
        )

    async def stop(self, flush: bool = True) -> Optional[FlushResult]:
        """
        Stop the flush worker.

        A flush the worker already started is awaited, never abandoned.

        Args:
            flush: Persist whatever is still buffered after stopping

        Returns:
            The final FlushResult if a final flush ran
        """
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
            logger.info("Query shape flush worker stopped")

        in_flight, self._in_flight = self._in_flight, None
        if in_flight is not None and not in_flight.done():
            logger.debug("Waiting for in-flight query shape flush")
            await in_flight

        if flush:
            return await self.flush()
        return None
