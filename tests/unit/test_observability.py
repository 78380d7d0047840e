"""
Unit tests for contextual logging.
"""

import asyncio
import logging

import pytest

from mdb_adapter.observability import (get_logger, get_logging_context,
                                       log_operation, operation_context)


class TestOperationContext:
    def test_no_context_outside_operation(self):
        context = get_logging_context()

        assert "timestamp" in context
        assert "resource" not in context
        assert "correlation_id" not in context

    def test_context_set_and_restored(self):
        with operation_context("posts", "adapter.find") as context:
            current = get_logging_context()
            assert current["resource"] == "posts"
            assert current["operation"] == "adapter.find"
            assert current["correlation_id"] == context["correlation_id"]

        assert "resource" not in get_logging_context()

    def test_nested_context_inherits_correlation_id(self):
        with operation_context("posts", "adapter.find_by_id") as outer:
            with operation_context("posts", "adapter.find", page=2) as inner:
                assert inner["correlation_id"] == outer["correlation_id"]
                assert get_logging_context()["operation"] == "adapter.find"
                assert get_logging_context()["page"] == 2
            assert get_logging_context()["operation"] == "adapter.find_by_id"

    def test_separate_operations_get_new_correlation_ids(self):
        with operation_context("posts", "adapter.find") as first:
            pass
        with operation_context("posts", "adapter.find") as second:
            pass

        assert first["correlation_id"] != second["correlation_id"]

    @pytest.mark.asyncio
    async def test_spawned_task_inherits_correlation_id(self):
        async def child():
            with operation_context("queryShapeCounters", "query_shapes.flush") as context:
                return context

        with operation_context("posts", "adapter.find") as parent:
            context = await asyncio.get_running_loop().create_task(child())

        assert context["correlation_id"] == parent["correlation_id"]
        assert context["resource"] == "queryShapeCounters"


class TestContextualLogger:
    def test_logger_adds_context(self, caplog):
        logger = get_logger("mdb_adapter.test")

        with caplog.at_level(logging.INFO, logger="mdb_adapter.test"):
            with operation_context("posts", "adapter.update") as context:
                logger.info("hello", extra={"multi": True})

        record = caplog.records[-1]
        assert record.resource == "posts"
        assert record.operation == "adapter.update"
        assert record.correlation_id == context["correlation_id"]
        assert record.multi is True

    def test_log_operation(self, caplog):
        logger = logging.getLogger("mdb_adapter.test")

        with caplog.at_level(logging.INFO, logger="mdb_adapter.test"):
            with operation_context("posts", "adapter.remove_permanently"):
                log_operation(logger, "adapter.remove_permanently", multi=True)

        record = caplog.records[-1]
        assert "adapter.remove_permanently" in record.getMessage()
        assert record.resource == "posts"
        assert record.success is True
        assert record.multi is True

    def test_log_operation_failure_with_duration(self, caplog):
        logger = logging.getLogger("mdb_adapter.test")

        with caplog.at_level(logging.INFO, logger="mdb_adapter.test"):
            log_operation(logger, "adapter.find", success=False, duration_ms=12.345)

        record = caplog.records[-1]
        assert record.getMessage() == "Operation failed: adapter.find (duration: 12.35ms)"
        assert record.duration_ms == 12.35
