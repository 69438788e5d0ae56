"""Shared fixtures for guildsql tests."""

import pytest

from guildsql.config.db_config import ConnectionConfig
from guildsql.core.connection import ConnectionManager
from guildsql.core.executor import QueryExecutor
from guildsql.models.entity import ColumnDeclaration, EntityRegistry


@pytest.fixture
def sqlite_config(tmp_path):
    """Single-file engine configuration on a temporary file."""
    return ConnectionConfig(dialect='sqlite', storage_path=str(tmp_path / 'data' / 'bot.db'), pool_size=2)


@pytest.fixture
def duckdb_config(tmp_path):
    """Embedded-file configuration on a temporary file."""
    return ConnectionConfig(dialect='duckdb', storage_path=str(tmp_path / 'data' / 'bot.duckdb'), pool_size=2)


@pytest.fixture
def connection(sqlite_config):
    """Connected manager, closed after the test."""
    manager = ConnectionManager(sqlite_config)
    assert manager.connect()
    yield manager
    manager.close()


@pytest.fixture
def executor(connection):
    return QueryExecutor(connection)


@pytest.fixture
def registry():
    """Small registry independent of the bot tables."""
    registry = EntityRegistry()
    registry.declare(
        "Notes",
        ColumnDeclaration.parse("ID", "INTEGER", primary_key=True, nullable=False),
        ColumnDeclaration.parse("BODY", "VARCHAR(200)"),
        ColumnDeclaration.parse("PAYLOAD", "JSON"),
    )
    return registry
