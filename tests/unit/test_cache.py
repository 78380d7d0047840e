"""
Unit tests for QueryShapeCache.

Tests accumulation, swap semantics and thread-safety.
"""

import threading

from mdb_adapter.query_shapes.cache import QueryShapeCache, QueryShapeRecord
from mdb_adapter.query_shapes.canonical import canonicalize


class TestQueryShapeCache:
    """Test accumulation and swapping."""

    def test_increment_accumulates(self):
        """Repeated shapes accumulate under one ordered key."""
        cache = QueryShapeCache()
        shape = canonicalize("posts", {"status": "x"})

        assert cache.increment(shape) == 1
        assert cache.increment(canonicalize("posts", {"status": "y"})) == 2
        assert cache.increment(shape) == 3

        assert len(cache) == 1
        assert cache.snapshot() == {shape.ordered_key: 3}

    def test_distinct_shapes_kept_apart(self):
        cache = QueryShapeCache()
        a = canonicalize("posts", {"a": 1, "b": 1})
        b = canonicalize("posts", {"b": 1, "a": 1})
        cache.increment(a)
        cache.increment(b)

        assert len(cache) == 2
        assert a.ordered_key in cache
        assert cache.get(a.ordered_key).sorted_key == cache.get(b.ordered_key).sorted_key

    def test_record_metadata(self):
        """First sighting sets firstSeen; later sightings move lastSeen."""
        cache = QueryShapeCache()
        shape = canonicalize("posts", {"status": 1}, {"createDate": -1})
        cache.increment(shape)
        first = cache.get(shape.ordered_key).first_seen
        cache.increment(shape)
        record = cache.get(shape.ordered_key)

        assert record.name == "posts"
        assert record.first_seen == first
        assert record.last_seen >= first
        assert record.ordered_shape == {"name": "posts", "where": {"status": 1}, "sort": {"createDate": -1}}

    def test_swap_returns_snapshot_and_empties(self):
        cache = QueryShapeCache()
        shape = canonicalize("posts", {"status": 1})
        cache.increment(shape)

        snapshot = cache.swap()

        assert list(snapshot) == [shape.ordered_key]
        assert snapshot[shape.ordered_key].occurrence_count == 1
        assert len(cache) == 0

    def test_increments_after_swap_go_to_new_mapping(self):
        """A swapped-out snapshot is never touched by later increments."""
        cache = QueryShapeCache()
        shape = canonicalize("posts", {"status": 1})
        cache.increment(shape)
        snapshot = cache.swap()

        cache.increment(shape)

        assert snapshot[shape.ordered_key].occurrence_count == 1
        assert cache.snapshot() == {shape.ordered_key: 1}

    def test_clear(self):
        cache = QueryShapeCache()
        cache.increment(canonicalize("posts", {"a": 1}))
        cache.clear()
        assert len(cache) == 0

    def test_concurrent_increments(self):
        """No increments are lost under concurrent access."""
        cache = QueryShapeCache()
        shape = canonicalize("posts", {"status": 1})
        num_threads = 8
        per_thread = 250
        barrier = threading.Barrier(num_threads)

        def work():
            barrier.wait()
            for _ in range(per_thread):
                cache.increment(shape)

        threads = [threading.Thread(target=work) for _ in range(num_threads)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert cache.snapshot()[shape.ordered_key] == num_threads * per_thread

    def test_concurrent_increment_and_swap_count_exactly_once(self):
        """Every increment lands in exactly one snapshot."""
        cache = QueryShapeCache()
        shape = canonicalize("posts", {"status": 1})
        total = 2000
        snapshots = []
        done = threading.Event()

        def writer():
            for _ in range(total):
                cache.increment(shape)
            done.set()

        def swapper():
            while not done.is_set():
                snapshots.append(cache.swap())
            snapshots.append(cache.swap())

        threads = [threading.Thread(target=writer), threading.Thread(target=swapper)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        counted = sum(
            snap[shape.ordered_key].occurrence_count for snap in snapshots if snap
        )
        assert counted == total


class TestQueryShapeRecord:
    """Test record conversion."""

    def test_to_document(self):
        record = QueryShapeRecord.from_canonical(canonicalize("posts", {"a": 1}))
        doc = record.to_document()

        assert doc["orderedKey"] == record.ordered_key
        assert doc["sortedKey"] == record.sorted_key
        assert doc["name"] == "posts"
        assert set(doc) == {"orderedKey", "sortedKey", "name", "orderedShape", "sortedShape", "firstSeen"}
