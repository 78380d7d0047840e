"""
Unit tests for QueryShapeTracker.

Tests recording rules, opportunistic flushing and the scheduled worker.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from mdb_adapter.exceptions import ConfigurationError
from mdb_adapter.observability import get_logging_context, get_metrics_collector
from mdb_adapter.query_shapes.canonical import canonicalize
from mdb_adapter.query_shapes.store import QueryShapeStore
from mdb_adapter.query_shapes.tracker import QueryShapeTracker


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def store():
    store = MagicMock(spec=QueryShapeStore)
    store.find_one = AsyncMock(return_value=None)
    store.upsert_increment = AsyncMock()
    return store


class TestRecord:
    """Test what gets recorded."""

    def test_record_counts_shapes(self):
        tracker = QueryShapeTracker()

        assert tracker.record("posts", {"status": "a"}) == 1
        assert tracker.record("posts", {"status": "b"}) == 2
        assert len(tracker.cache) == 1

    def test_identifier_lookups_are_skipped(self):
        tracker = QueryShapeTracker()

        assert tracker.record("posts", {"_id": "507f1f77bcf86cd799439011"}) is None
        assert len(tracker.cache) == 0

    def test_disabled_tracker_records_nothing(self):
        tracker = QueryShapeTracker(enabled=False)

        assert tracker.record("posts", {"status": 1}) is None
        assert len(tracker.cache) == 0

    @pytest.mark.parametrize("name", ["", None])
    def test_missing_name_raises(self, name):
        with pytest.raises(ConfigurationError):
            QueryShapeTracker().record(name, {"status": 1})

    def test_invalid_interval(self):
        with pytest.raises(ConfigurationError) as exc_info:
            QueryShapeTracker(flush_interval=0)
        assert exc_info.value.config_key == "query_shape_flush_interval"

    def test_clear(self):
        tracker = QueryShapeTracker()
        tracker.record("posts", {"a": 1})
        tracker.clear()
        assert len(tracker.cache) == 0


class TestFlush:
    """Test flush triggering."""

    @pytest.mark.asyncio
    async def test_flush_without_store_is_noop(self):
        tracker = QueryShapeTracker()
        tracker.record("posts", {"a": 1})

        result = await tracker.flush()

        assert result.processed == 0
        assert len(tracker.cache) == 1

    @pytest.mark.asyncio
    async def test_flush_persists_and_records_metrics(self, store):
        tracker = QueryShapeTracker(store)
        shape = canonicalize("posts", {"a": 1})
        tracker.record("posts", {"a": 1})

        result = await tracker.flush()

        assert result.persisted == 1
        assert tracker.last_result is result
        store.upsert_increment.assert_awaited_once()
        assert store.upsert_increment.call_args.args == (shape.ordered_key, 1)
        assert get_metrics_collector().get_operation_count("query_shapes.flush") == 1

    @pytest.mark.asyncio
    async def test_flush_runs_in_counter_collection_context(self, store):
        seen = []

        async def upsert(*args, **kwargs):
            seen.append(get_logging_context())

        store.upsert_increment = AsyncMock(side_effect=upsert)
        tracker = QueryShapeTracker(store)
        tracker.record("posts", {"a": 1})

        await tracker.flush()

        assert seen[0]["resource"] == "queryShapeCounters"
        assert seen[0]["operation"] == "query_shapes.flush"

    @pytest.mark.asyncio
    async def test_record_triggers_flush_after_interval(self, store):
        """Without a worker, record() flushes once the interval has elapsed."""
        clock = FakeClock()
        tracker = QueryShapeTracker(store, flush_interval=60, clock=clock)

        tracker.record("posts", {"a": 1})
        await asyncio.sleep(0)
        store.find_one.assert_not_called()

        clock.now += 61
        tracker.record("posts", {"a": 1})
        # Let the fire-and-forget flush run
        for _ in range(10):
            await asyncio.sleep(0)

        assert store.upsert_increment.call_args.args[1] == 2
        assert len(tracker.cache) == 0

    @pytest.mark.asyncio
    async def test_flush_trigger_fires_once_per_interval(self, store):
        clock = FakeClock()
        tracker = QueryShapeTracker(store, flush_interval=60, clock=clock)
        clock.now += 61

        tracker.record("posts", {"a": 1})
        tracker.record("posts", {"b": 1})
        for _ in range(10):
            await asyncio.sleep(0)

        assert store.upsert_increment.await_count == 2
        assert tracker.last_result.processed == 2

    def test_record_outside_event_loop_does_not_fail(self, store):
        clock = FakeClock()
        tracker = QueryShapeTracker(store, flush_interval=60, clock=clock)
        clock.now += 61

        assert tracker.record("posts", {"a": 1}) == 1
        assert len(tracker.cache) == 1


class TestWorker:
    """Test the scheduled flush worker."""

    @pytest.mark.asyncio
    async def test_worker_flushes_periodically(self, store):
        tracker = QueryShapeTracker(store, flush_interval=0.01)
        tracker.record("posts", {"a": 1})

        tracker.start()
        assert tracker.running
        await asyncio.sleep(0.05)
        await tracker.stop(flush=False)

        assert not tracker.running
        store.upsert_increment.assert_awaited()
        assert len(tracker.cache) == 0

    @pytest.mark.asyncio
    async def test_record_does_not_flush_while_worker_runs(self, store):
        clock = FakeClock()
        tracker = QueryShapeTracker(store, flush_interval=60, clock=clock)
        tracker.start()
        clock.now += 61

        tracker.record("posts", {"a": 1})
        await asyncio.sleep(0)

        store.find_one.assert_not_called()
        await tracker.stop(flush=False)

    @pytest.mark.asyncio
    async def test_stop_runs_final_flush(self, store):
        tracker = QueryShapeTracker(store, flush_interval=60)
        tracker.start()
        tracker.record("posts", {"a": 1})

        result = await tracker.stop()

        assert result.persisted == 1
        assert not tracker.running

    @pytest.mark.asyncio
    async def test_stop_waits_for_in_flight_flush(self, store):
        """Stopping mid-flush still persists the snapshot the worker swapped out."""
        entered = asyncio.Event()
        release = asyncio.Event()

        async def slow_find_one(key):
            entered.set()
            await release.wait()
            return None

        store.find_one = AsyncMock(side_effect=slow_find_one)
        tracker = QueryShapeTracker(store, flush_interval=0.01)
        tracker.record("posts", {"status": "x"})
        tracker.start()
        await asyncio.wait_for(entered.wait(), timeout=1)

        stopping = asyncio.ensure_future(tracker.stop(flush=True))
        await asyncio.sleep(0)
        assert not stopping.done()
        release.set()
        result = await asyncio.wait_for(stopping, timeout=1)

        store.upsert_increment.assert_awaited_once()
        assert store.upsert_increment.call_args.args[1] == 1
        assert result.processed == 0
        assert not tracker.running

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, store):
        tracker = QueryShapeTracker(store, flush_interval=60)
        tracker.start()
        worker = tracker._worker
        tracker.start()

        assert tracker._worker is worker
        await tracker.stop(flush=False)
