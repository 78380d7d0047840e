"""
Configuration management for MDB_ADAPTER.

Connection settings are opaque to the adapter: they are read from the
environment (or passed directly) and handed to the driver unexamined.

Example:
    # Using environment variables
    config = AdapterConfig.from_env()

    # Or using direct parameters
    config = AdapterConfig(mongo_uri="mongodb://localhost:27017", db_name="my_db")
"""

import os
from typing import Any

from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_CONNECT_TIMEOUT_MS,
    DEFAULT_FLUSH_INTERVAL,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
)
from .exceptions import ConfigurationError

# Environment variable name for each config field
ENV_VARS: dict[str, str] = {
    "mongo_uri": "MONGO_URI",
    "db_name": "DB_NAME",
    "debug": "MONGO_DEBUG",
    "mongos": "MONGO_MONGOS",
    "max_pool_size": "MONGO_MAX_POOL_SIZE",
    "min_pool_size": "MONGO_MIN_POOL_SIZE",
    "connect_timeout_ms": "MONGO_CONNECT_TIMEOUT_MS",
    "query_shape_tracking": "QUERY_SHAPE_TRACKING",
    "query_shape_flush_interval": "QUERY_SHAPE_FLUSH_INTERVAL",
    "query_shape_scheduled_flush": "QUERY_SHAPE_SCHEDULED_FLUSH",
}


class AdapterConfig(BaseModel):
    """
    MongoDB adapter configuration.

    Pydantic handles type coercion and range checks; ``validate_required``
    adds the cross-field checks needed before connecting.
    """

    mongo_uri: str = Field("", description="MongoDB connection URI")
    db_name: str = Field("", description="Database name")
    debug: bool = Field(False, description="Log every command sent to MongoDB")
    mongos: bool = Field(False, description="Connecting through a mongos router")
    max_pool_size: int = Field(
        DEFAULT_MAX_POOL_SIZE, ge=1, description="Maximum connection pool size"
    )
    min_pool_size: int = Field(
        DEFAULT_MIN_POOL_SIZE, ge=0, description="Minimum connection pool size"
    )
    connect_timeout_ms: int = Field(
        DEFAULT_CONNECT_TIMEOUT_MS, ge=1000, description="Socket connect timeout"
    )
    query_shape_tracking: bool = Field(True, description="Record query shapes")
    query_shape_flush_interval: float = Field(
        DEFAULT_FLUSH_INTERVAL, gt=0, description="Seconds between query shape flushes"
    )
    query_shape_scheduled_flush: bool = Field(
        True, description="Run a background task that owns the flush cadence"
    )

    @classmethod
    def from_env(cls, **overrides: Any) -> "AdapterConfig":
        """
        Build a config from environment variables.

        Args:
            **overrides: Values that take precedence over the environment

        Returns:
            AdapterConfig instance
        """
        values: dict[str, Any] = {}
        for field_name, env_var in ENV_VARS.items():
            raw = os.getenv(env_var)
            if raw is not None and raw != "":
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def validate_required(self) -> None:
        """
        Validate configuration values needed to connect.

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        if not self.mongo_uri:
            raise ConfigurationError(
                "mongo_uri is required (set MONGO_URI environment variable or pass directly)",
                config_key="mongo_uri",
            )

        if not self.db_name:
            raise ConfigurationError(
                "db_name is required (set DB_NAME environment variable or pass directly)",
                config_key="db_name",
            )

        if self.min_pool_size > self.max_pool_size:
            raise ConfigurationError(
                f"min_pool_size ({self.min_pool_size}) cannot be greater than "
                f"max_pool_size ({self.max_pool_size})",
                config_key="min_pool_size",
                config_value=self.min_pool_size,
            )
