"""
Unit tests for ConnectionManager.

Tests connection initialization, client options, error handling and shutdown.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from mdb_adapter.core.connection import CommandLogger, ConnectionManager
from mdb_adapter.exceptions import InitializationError
from mdb_adapter.observability import get_metrics_collector


@pytest.fixture
def connection_config():
    """Provide default configuration for ConnectionManager."""
    return {
        "mongo_uri": "mongodb://localhost:27017",
        "db_name": "test_db",
        "max_pool_size": 10,
        "min_pool_size": 1,
    }


class TestClientOptions:
    """Test options passed to the driver."""

    def test_defaults(self, connection_config):
        options = ConnectionManager(**connection_config)._client_options()

        assert options["maxPoolSize"] == 10
        assert options["minPoolSize"] == 1
        assert options["connectTimeoutMS"] == 30000
        assert "directConnection" not in options
        assert "event_listeners" not in options

    def test_mongos(self, connection_config):
        options = ConnectionManager(**connection_config, mongos=True)._client_options()
        assert options["directConnection"] is False

    def test_debug_attaches_command_logger(self, connection_config):
        options = ConnectionManager(**connection_config, debug=True)._client_options()
        assert isinstance(options["event_listeners"][0], CommandLogger)


class TestConnectionManagerLifecycle:
    """Test initialize/shutdown."""

    @pytest.mark.asyncio
    async def test_initialize_success(self, connection_config, mock_mongo_client, mock_mongo_database):
        with patch(
            "mdb_adapter.core.connection.AsyncIOMotorClient", return_value=mock_mongo_client
        ) as client_cls:
            manager = ConnectionManager(**connection_config)
            await manager.initialize()

        assert manager.initialized
        assert manager.mongo_client is mock_mongo_client
        assert manager.mongo_db is mock_mongo_database
        mock_mongo_client.admin.command.assert_awaited_once_with("ping")
        assert client_cls.call_args.args == ("mongodb://localhost:27017",)
        assert get_metrics_collector().get_operation_count("connection.initialize") == 1

    @pytest.mark.asyncio
    async def test_reinitialize_closes_previous_client(self, connection_config, mock_mongo_client):
        with patch(
            "mdb_adapter.core.connection.AsyncIOMotorClient", return_value=mock_mongo_client
        ):
            manager = ConnectionManager(**connection_config)
            await manager.initialize()
            await manager.initialize()

        mock_mongo_client.close.assert_called_once()
        assert manager.initialized

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self, connection_config, mock_mongo_client):
        with patch(
            "mdb_adapter.core.connection.AsyncIOMotorClient", return_value=mock_mongo_client
        ):
            manager = ConnectionManager(**connection_config)
            await manager.initialize()

        await manager.shutdown()
        await manager.shutdown()

        mock_mongo_client.close.assert_called_once()
        assert not manager.initialized

    def test_properties_before_initialize(self, connection_config):
        manager = ConnectionManager(**connection_config)

        with pytest.raises(RuntimeError, match="not initialized"):
            manager.mongo_client
        with pytest.raises(RuntimeError, match="not initialized"):
            manager.mongo_db


class TestConnectionManagerErrorHandling:
    """Test error handling during connection initialization."""

    @pytest.mark.asyncio
    async def test_initialize_server_selection_timeout(self, connection_config):
        mock_client = MagicMock()
        mock_client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))

        with patch("mdb_adapter.core.connection.AsyncIOMotorClient", return_value=mock_client):
            manager = ConnectionManager(**connection_config)

            with pytest.raises(InitializationError) as exc_info:
                await manager.initialize()

        assert "Failed to connect to MongoDB" in str(exc_info.value)
        assert exc_info.value.context["error_type"] == "ServerSelectionTimeoutError"
        assert exc_info.value.db_name == "test_db"
        assert not manager.initialized
        mock_client.close.assert_called_once()
        assert get_metrics_collector().get_error_count("connection.initialize") == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [TypeError("bad"), ValueError("bad"), KeyError("bad")])
    async def test_initialize_programming_errors(self, connection_config, error):
        mock_client = MagicMock()
        mock_client.admin.command = AsyncMock(side_effect=error)

        with patch("mdb_adapter.core.connection.AsyncIOMotorClient", return_value=mock_client):
            manager = ConnectionManager(**connection_config)

            with pytest.raises(InitializationError) as exc_info:
                await manager.initialize()

        assert "ConnectionManager initialization failed" in str(exc_info.value)
        assert exc_info.value.context["error_type"] == type(error).__name__

    @pytest.mark.asyncio
    async def test_initialize_attribute_error(self, connection_config):
        mock_client = MagicMock()
        mock_client.admin = None

        with patch("mdb_adapter.core.connection.AsyncIOMotorClient", return_value=mock_client):
            manager = ConnectionManager(**connection_config)

            with pytest.raises(InitializationError) as exc_info:
                await manager.initialize()

        assert exc_info.value.context["error_type"] == "AttributeError"


class TestCommandLogger:
    def test_started_logs_at_debug(self, caplog):
        event = MagicMock(database_name="db", command_name="find", request_id=1, command={"find": "x"})

        with caplog.at_level("DEBUG", logger="mdb_adapter.commands"):
            CommandLogger().started(event)

        assert "db.find" in caplog.text
