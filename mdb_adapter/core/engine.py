"""
Engine

The orchestration layer for MDB_ADAPTER that manages:
- Database connection
- Resource registration and indexes
- Query shape tracking lifecycle
- Adapter construction

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

import logging
from typing import Any, Mapping, Optional, Union

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from ..config import AdapterConfig
from ..constants import QUERY_SHAPE_COLLECTION
from ..observability import get_logger as get_contextual_logger
from ..query_shapes import (QUERY_SHAPE_RESOURCE, FlushResult,
                            QueryShapeStore, QueryShapeTracker)
from ..resources import ResourceDescriptor, ResourceRegistry
from .adapter import MongoAdapter
from .connection import ConnectionManager

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class AdapterEngine:
    """
    Owns the connection, the resource registry and the query shape tracker.

    Example:
        async with AdapterEngine(AdapterConfig.from_env()) as engine:
            posts = engine.adapter({"name": "posts", "fields": {"title": "string"}})
            await posts.find({"where": {"title": "Hello"}})
    """

    def __init__(self, config: Optional[AdapterConfig] = None, **overrides: Any) -> None:
        """
        Initialize the engine.

        Args:
            config: Adapter configuration; read from the environment if omitted
            **overrides: Config values that take precedence over ``config``
        """
        if config is None:
            config = AdapterConfig.from_env(**overrides)
        elif overrides:
            config = config.model_copy(update=overrides)
        self.config = config

        self._connection_manager = ConnectionManager(
            mongo_uri=config.mongo_uri,
            db_name=config.db_name,
            debug=config.debug,
            mongos=config.mongos,
            max_pool_size=config.max_pool_size,
            min_pool_size=config.min_pool_size,
            connect_timeout_ms=config.connect_timeout_ms,
        )
        self.registry = ResourceRegistry()
        self.query_shapes = QueryShapeTracker(
            flush_interval=config.query_shape_flush_interval,
            enabled=config.query_shape_tracking,
        )

    async def initialize(self) -> None:
        """
        Connect and prepare the engine.

        This method:
        1. Validates the configuration
        2. Connects to MongoDB
        3. Registers the query shape counter resource and its indexes
        4. Starts the scheduled flush worker (when configured)

        Raises:
            ConfigurationError: If required configuration is missing
            InitializationError: If the connection fails
        """
        self.config.validate_required()
        await self._connection_manager.initialize()

        self.registry.attach_database(lambda: self._connection_manager.mongo_db)
        self.registry.get_model(QUERY_SHAPE_RESOURCE)
        await self.registry.ensure_indexes(QUERY_SHAPE_COLLECTION)

        self.query_shapes.attach_store(
            QueryShapeStore(self._connection_manager.mongo_db[QUERY_SHAPE_COLLECTION])
        )
        if self.config.query_shape_tracking and self.config.query_shape_scheduled_flush:
            self.query_shapes.start()

        contextual_logger.info(
            "AdapterEngine initialized",
            extra={
                "db_name": self.config.db_name,
                "query_shape_tracking": self.config.query_shape_tracking,
                "scheduled_flush": self.query_shapes.running,
            },
        )

    async def shutdown(self) -> Optional[FlushResult]:
        """
        Flush buffered query shapes and close the connection.

        Returns:
            The final flush result, if the engine was initialized
        """
        if not self._connection_manager.initialized:
            return None

        result = await self.query_shapes.stop(flush=True)
        if result is not None and result.failed:
            logger.warning(f"{result.failed} query shape(s) were not persisted on shutdown")
        await self._connection_manager.shutdown()
        return result

    async def __aenter__(self) -> "AdapterEngine":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    @property
    def initialized(self) -> bool:
        return self._connection_manager.initialized

    @property
    def mongo_client(self) -> AsyncIOMotorClient:
        """
        Get the MongoDB client.

        Raises:
            RuntimeError: If engine is not initialized
        """
        return self._connection_manager.mongo_client

    @property
    def mongo_db(self) -> AsyncIOMotorDatabase:
        """
        Get the MongoDB database.

        Raises:
            RuntimeError: If engine is not initialized
        """
        return self._connection_manager.mongo_db

    def adapter(self, resource: Union[Mapping[str, Any], ResourceDescriptor]) -> MongoAdapter:
        """
        Build a CRUD adapter for a resource, registering it if needed.

        Raises:
            ResourceValidationError: If the descriptor is invalid
        """
        return MongoAdapter(resource, self.registry, tracker=self.query_shapes)

    async def ensure_indexes(self) -> dict:
        """Create declared indexes for every registered resource."""
        return await self.registry.ensure_all_indexes()
