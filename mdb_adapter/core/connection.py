"""
Connection management for the MongoDB adapter.

This module handles MongoDB connection initialization, shutdown, and
connection pool configuration.

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

import logging
import time

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import monitoring
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from ..constants import (
    CLIENT_APP_NAME,
    DEFAULT_CONNECT_TIMEOUT_MS,
    DEFAULT_MAX_IDLE_TIME_MS,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
)
from ..exceptions import InitializationError
from ..observability import get_logger as get_contextual_logger
from ..observability import record_operation

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)
command_logger = logging.getLogger("mdb_adapter.commands")


class CommandLogger(monitoring.CommandListener):
    """Logs every command sent to MongoDB at DEBUG level (debug mode)."""

    def started(self, event: monitoring.CommandStartedEvent) -> None:
        command_logger.debug(
            f"{event.database_name}.{event.command_name} "
            f"[request_id={event.request_id}] {dict(event.command)}"
        )

    def succeeded(self, event: monitoring.CommandSucceededEvent) -> None:
        command_logger.debug(
            f"{event.command_name} succeeded in {event.duration_micros / 1000:.2f}ms "
            f"[request_id={event.request_id}]"
        )

    def failed(self, event: monitoring.CommandFailedEvent) -> None:
        command_logger.debug(
            f"{event.command_name} failed in {event.duration_micros / 1000:.2f}ms "
            f"[request_id={event.request_id}]: {event.failure}"
        )


class ConnectionManager:
    """
    Manages MongoDB connection lifecycle and configuration.

    Handles connection initialization, validation, and shutdown.
    """

    def __init__(
        self,
        mongo_uri: str,
        db_name: str,
        debug: bool = False,
        mongos: bool = False,
        max_pool_size: int = DEFAULT_MAX_POOL_SIZE,
        min_pool_size: int = DEFAULT_MIN_POOL_SIZE,
        connect_timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS,
    ) -> None:
        """
        Initialize the connection manager.

        Args:
            mongo_uri: MongoDB connection URI
            db_name: Database name
            debug: Log every command sent to the server
            mongos: The URI points at mongos routers of a sharded cluster
            max_pool_size: Maximum MongoDB connection pool size
            min_pool_size: Minimum MongoDB connection pool size
            connect_timeout_ms: Socket connect timeout in milliseconds
        """
        self.mongo_uri = mongo_uri
        self.db_name = db_name
        self.debug = debug
        self.mongos = mongos
        self.max_pool_size = max_pool_size
        self.min_pool_size = min_pool_size
        self.connect_timeout_ms = connect_timeout_ms

        # Connection state
        self._mongo_client: AsyncIOMotorClient | None = None
        self._mongo_db: AsyncIOMotorDatabase | None = None
        self._initialized: bool = False

    def _client_options(self) -> dict:
        options = {
            "serverSelectionTimeoutMS": DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
            "connectTimeoutMS": self.connect_timeout_ms,
            "appname": CLIENT_APP_NAME,
            "maxPoolSize": self.max_pool_size,
            "minPoolSize": self.min_pool_size,
            "maxIdleTimeMS": DEFAULT_MAX_IDLE_TIME_MS,
            "retryWrites": True,
            "retryReads": True,
        }
        if self.mongos:
            options["directConnection"] = False
        if self.debug:
            options["event_listeners"] = [CommandLogger()]
        return options

    async def initialize(self) -> None:
        """
        Connect to MongoDB and verify the connection with a ping.

        Calling this again after a successful initialize closes the existing
        client and reconnects.

        Raises:
            InitializationError: If initialization fails
        """
        start_time = time.time()

        if self._initialized:
            logger.info("ConnectionManager already initialized. Reconnecting.")
            await self.shutdown()

        contextual_logger.info(
            "Initializing MongoDB connection",
            extra={
                "db_name": self.db_name,
                "debug": self.debug,
                "mongos": self.mongos,
                "max_pool_size": self.max_pool_size,
                "min_pool_size": self.min_pool_size,
            },
        )

        try:
            self._mongo_client = AsyncIOMotorClient(self.mongo_uri, **self._client_options())

            await self._mongo_client.admin.command("ping")
            self._mongo_db = self._mongo_client[self.db_name]

            self._initialized = True
            duration_ms = (time.time() - start_time) * 1000
            record_operation("connection.initialize", duration_ms, success=True)
            contextual_logger.info(
                "MongoDB connection initialized successfully",
                extra={
                    "db_name": self.db_name,
                    "pool_size": f"{self.min_pool_size}-{self.max_pool_size}",
                    "duration_ms": round(duration_ms, 2),
                },
            )
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            duration_ms = (time.time() - start_time) * 1000
            record_operation("connection.initialize", duration_ms, success=False)
            self._discard_client()
            contextual_logger.critical(
                "MongoDB connection failed",
                extra={
                    "error_type": type(e).__name__,
                    "error": str(e),
                    "duration_ms": round(duration_ms, 2),
                },
                exc_info=True,
            )
            raise InitializationError(
                f"Failed to connect to MongoDB: {e}",
                mongo_uri=self.mongo_uri,
                db_name=self.db_name,
                context={"error_type": type(e).__name__},
            ) from e
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            # Programming or configuration errors (bad URI options, etc.)
            duration_ms = (time.time() - start_time) * 1000
            record_operation("connection.initialize", duration_ms, success=False)
            self._discard_client()
            contextual_logger.critical(
                "ConnectionManager initialization failed",
                extra={
                    "error_type": type(e).__name__,
                    "error": str(e),
                    "duration_ms": round(duration_ms, 2),
                },
                exc_info=True,
            )
            raise InitializationError(
                f"ConnectionManager initialization failed: {e}",
                mongo_uri=self.mongo_uri,
                db_name=self.db_name,
                context={"error_type": type(e).__name__},
            ) from e

    def _discard_client(self) -> None:
        if self._mongo_client is not None:
            self._mongo_client.close()
        self._mongo_client = None
        self._mongo_db = None

    async def shutdown(self) -> None:
        """
        Shutdown the MongoDB connection and clean up resources.

        This method is idempotent - it's safe to call multiple times.
        """
        start_time = time.time()

        if not self._initialized:
            return

        contextual_logger.info("Shutting down MongoDB connection...")
        if self._mongo_client:
            self._mongo_client.close()

        self._initialized = False
        self._mongo_client = None
        self._mongo_db = None

        duration_ms = (time.time() - start_time) * 1000
        record_operation("connection.shutdown", duration_ms, success=True)
        contextual_logger.info(
            "MongoDB connection shutdown complete",
            extra={"duration_ms": round(duration_ms, 2)},
        )

    @property
    def mongo_client(self) -> AsyncIOMotorClient:
        """
        Get the MongoDB client.

        Raises:
            RuntimeError: If connection is not initialized
        """
        if not self._initialized:
            raise RuntimeError(
                "ConnectionManager not initialized. Call initialize() first.",
            )
        return self._mongo_client

    @property
    def mongo_db(self) -> AsyncIOMotorDatabase:
        """
        Get the MongoDB database.

        Raises:
            RuntimeError: If connection is not initialized
        """
        if not self._initialized:
            raise RuntimeError(
                "ConnectionManager not initialized. Call initialize() first.",
            )
        return self._mongo_db

    @property
    def initialized(self) -> bool:
        """Check if connection is initialized."""
        return self._initialized
