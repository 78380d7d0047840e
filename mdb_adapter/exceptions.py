"""
Custom exceptions for MDB_ADAPTER.

These exceptions provide more specific error types while maintaining
backward compatibility with RuntimeError.
"""

from typing import Any, Dict, List, Optional


class MongoAdapterError(RuntimeError):
    """
    Base exception for MongoDB adapter errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (resource,
                 collection_name, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class InitializationError(MongoAdapterError):
    """
    Raised when the MongoDB connection cannot be established.

    Attributes:
        message: Error message
        mongo_uri: MongoDB connection URI (if available)
        db_name: Database name (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        mongo_uri: Optional[str] = None,
        db_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if mongo_uri:
            context["mongo_uri"] = mongo_uri
        if db_name:
            context["db_name"] = db_name
        super().__init__(message, context=context)
        self.mongo_uri = mongo_uri
        self.db_name = db_name


class ConfigurationError(MongoAdapterError):
    """
    Raised when configuration is invalid or missing.

    Also raised when a query shape is recorded without a resource name.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class ResourceValidationError(MongoAdapterError):
    """
    Raised when a resource descriptor fails validation.

    Attributes:
        message: Error message
        resource_name: Name of the offending resource (if available)
        error_paths: List of JSON paths with validation errors
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        resource_name: Optional[str] = None,
        error_paths: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if resource_name:
            context["resource"] = resource_name
        if error_paths:
            context["error_paths"] = error_paths
        super().__init__(message, context=context)
        self.resource_name = resource_name
        self.error_paths = error_paths or []


class DocumentValidationError(MongoAdapterError):
    """Raised when a document does not match its resource's field schema."""

    def __init__(
        self,
        message: str,
        resource_name: Optional[str] = None,
        field_path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if resource_name:
            context["resource"] = resource_name
        if field_path:
            context["field"] = field_path
        super().__init__(message, context=context)
        self.resource_name = resource_name
        self.field_path = field_path


class AuditError(MongoAdapterError):
    """Raised when audit fields cannot be set (no caller, incomplete noaudit data)."""


class MissingConditionsError(MongoAdapterError):
    """Raised when a remove is requested without any conditions."""


class QueryShapePersistenceError(MongoAdapterError):
    """
    A single query shape failed to persist during a flush.

    These are collected into the flush result and never raised to the
    request path.

    Attributes:
        ordered_key: Canonical key of the shape that failed
        cause: Underlying driver exception
    """

    def __init__(
        self,
        message: str,
        ordered_key: Optional[str] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if ordered_key:
            context["ordered_key"] = ordered_key
        if cause is not None:
            context["error_type"] = type(cause).__name__
        super().__init__(message, context=context)
        self.ordered_key = ordered_key
        self.cause = cause
