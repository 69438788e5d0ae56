"""
Tests for the connection manager against a single-file database
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from guildsql.config.db_config import ConnectionConfig
from guildsql.core.connection import ConnectionManager, ConnectionState
from guildsql.core.engine_factory import DatabaseFactory


class TestConnect:
    """Test opening and closing the pool"""

    def test_connect(self, sqlite_config):
        """Test that connect opens a pool and creates the database directory"""
        manager = ConnectionManager(sqlite_config)
        assert manager.state is ConnectionState.UNINITIALIZED
        assert not manager.connected_once

        assert manager.connect()
        assert manager.is_connected()
        assert manager.connected_once
        assert manager.state is ConnectionState.CONNECTED
        assert Path(sqlite_config.storage_path).parent.is_dir()
        manager.close()

    def test_close_is_idempotent(self, connection):
        connection.close()
        connection.close()
        assert not connection.is_connected()
        assert connection.state is ConnectionState.CLOSED
        # sticky
        assert connection.connected_once

    def test_close_without_connect(self, sqlite_config):
        manager = ConnectionManager(sqlite_config)
        manager.close()
        assert manager.state is ConnectionState.UNINITIALIZED

    def test_connect_replaces_handle(self, connection):
        """Test that a second connect closes the previous pool first"""
        first = connection.current_handle()
        assert connection.connect()
        second = connection.current_handle()

        assert first is not second
        assert first.closed
        assert second.is_open()
        assert connection.reconnect_count == 1

    def test_context_manager(self, sqlite_config):
        with ConnectionManager(sqlite_config) as manager:
            assert manager.is_connected()
        assert not manager.is_connected()


class TestConnectFailure:
    """Test that connect failures are reported, never raised"""

    def test_failure_before_any_connect(self, sqlite_config):
        manager = ConnectionManager(sqlite_config)
        with patch.object(DatabaseFactory, 'create_engine', side_effect=RuntimeError("unreachable")):
            assert manager.connect() is False

        assert manager.current_handle() is None
        assert not manager.is_connected()
        assert not manager.connected_once
        assert manager.state is ConnectionState.FAILED

    def test_failure_keeps_sticky_flag(self, connection):
        with patch.object(DatabaseFactory, 'create_engine', side_effect=RuntimeError("unreachable")):
            assert connection.connect() is False

        assert connection.connected_once
        assert not connection.is_connected()

    def test_checkout_failure_disposes_engine(self, sqlite_config):
        """Test that an engine whose first checkout fails is disposed"""
        manager = ConnectionManager(sqlite_config)
        engine = DatabaseFactory.create_engine(sqlite_config)
        with patch.object(DatabaseFactory, 'create_engine', return_value=engine), \
                patch.object(engine, 'connect', side_effect=RuntimeError("refused")), \
                patch.object(engine, 'dispose') as dispose:
            assert manager.connect() is False
        dispose.assert_called_once()
        engine.dispose()


class TestReconnect:
    """Test handle replacement after failures"""

    def test_reconnect_replaces_stale_handle(self, connection):
        stale = connection.current_handle()
        assert connection.reconnect(stale)
        assert connection.current_handle() is not stale
        assert connection.is_connected()

    def test_reconnect_keeps_newer_handle(self, connection):
        """Test that a caller holding an old handle does not close a fresh one"""
        stale = connection.current_handle()
        connection.connect()
        fresh = connection.current_handle()

        assert connection.reconnect(stale)
        assert connection.current_handle() is fresh
        assert fresh.is_open()

    def test_reconnect_after_close(self, connection):
        connection.close()
        assert connection.reconnect()
        assert connection.state is ConnectionState.CONNECTED


class TestConnectionInfo:
    """Test status reporting"""

    def test_info(self, connection, sqlite_config):
        info = connection.connection_info()
        assert info['dialect'] == 'single-file-engine'
        assert info['database'] == sqlite_config.storage_path
        assert info['connected'] is True
        assert info['driver'] == 'pysqlite'
        assert info['pool_size'] == 2
        assert info['url'].startswith('sqlite:///')

    def test_info_hides_password(self):
        manager = ConnectionManager(ConnectionConfig(dialect='postgres', password='hunter2'))
        info = manager.connection_info()
        assert 'hunter2' not in info['url']
        assert info['connected'] is False
