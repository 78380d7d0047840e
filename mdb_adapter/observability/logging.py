"""
Contextual logging for MDB_ADAPTER.

Adapter calls and query shape flushes run inside an operation context
(resource, operation, correlation id) held in a ``contextvars`` variable.
``ContextualLoggerAdapter`` and ``log_operation`` attach it to every record,
so nested calls and tasks spawned inside an operation share one correlation
id.
"""

import contextlib
import contextvars
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Tuple

_operation_context: contextvars.ContextVar[Optional[Dict[str, Any]]] = contextvars.ContextVar(
    "mdb_adapter_operation_context", default=None
)


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:16]


@contextlib.contextmanager
def operation_context(
    resource: Optional[str], operation: str, **extra: Any
) -> Iterator[Dict[str, Any]]:
    """
    Run a block inside a logging context.

    The correlation id is inherited from the enclosing context (including the
    context a task was spawned from) or freshly generated. ``resource`` and
    ``operation`` always describe the innermost block.

    Example:
        with operation_context("posts", "adapter.find"):
            logger.info("querying")  # carries resource, operation, correlation_id
    """
    parent = _operation_context.get() or {}
    context = {
        "correlation_id": parent.get("correlation_id") or new_correlation_id(),
        "resource": resource,
        "operation": operation,
        **extra,
    }
    token = _operation_context.set(context)
    try:
        yield context
    finally:
        _operation_context.reset(token)


def get_logging_context() -> Dict[str, Any]:
    """Timestamp plus the active operation context, if any."""
    context: Dict[str, Any] = {"timestamp": datetime.now(timezone.utc).isoformat()}
    current = _operation_context.get()
    if current:
        context.update(current)
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that merges the operation context into ``extra``."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        extra = get_logging_context()
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    return ContextualLoggerAdapter(logging.getLogger(name), {})


def log_operation(
    logger: logging.Logger,
    operation: str,
    level: int = logging.INFO,
    success: bool = True,
    duration_ms: Optional[float] = None,
    **context: Any,
) -> None:
    """
    Log one operation event with the active context.

    Args:
        logger: Logger instance
        operation: Operation name; overrides the context's operation
        level: Log level
        success: Whether the operation succeeded
        duration_ms: Operation duration in milliseconds
        **context: Additional fields for the record
    """
    extra = get_logging_context()
    extra.update(context)
    extra["operation"] = operation
    extra["success"] = success

    message = f"Operation: {operation}" if success else f"Operation failed: {operation}"
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)
        message += f" (duration: {duration_ms:.2f}ms)"

    logger.log(level, message, extra=extra)
