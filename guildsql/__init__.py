"""
guildsql - persistence layer for a Discord bot.

Connects to an embedded DuckDB file, a single-file SQLite database or a
PostgreSQL server, creates the bot's tables, applies versioned migrations
and seeds, and executes ``?``-parameterized SQL with one
reconnect-and-retry on transient connection loss.

Typical use:

    from guildsql import SQLConnector, load_config

    connector = SQLConnector(load_config().get_connection_config())
    connector.start()
    result = connector.query_sql("SELECT VALUE FROM Settings WHERE GID = ?", guild_id)
"""

__version__ = "1.0.0"

from .config.db_config import ConnectionConfig, Dialect
from .config.logging_config import setup_db_logging
from .config_manager import DatabaseConfigManager, load_config
from .connector import SQLConnector
from .core import (
    Blob, ConnectionManager, OutcomeStatus, Param, ParamKind, QueryExecutor,
    QueryOutcome, SchemaMaterializer, StoredResultSet
)
from .exceptions import (
    GuildSQLError, ConfigurationError, ParameterError, UnsupportedParameterError,
    ParameterCountError, ConnectionClosedError, QueryFailedError, MigrationError
)
from .migrations import MigrationRunner, SeedRunner
from .models import ColumnDeclaration, EntityDeclaration, EntityRegistry, default_registry
from .repositories import OptOutRepository

__all__ = [
    '__version__',
    'ConnectionConfig', 'Dialect', 'setup_db_logging',
    'DatabaseConfigManager', 'load_config',
    'SQLConnector',
    'Blob', 'ConnectionManager', 'OutcomeStatus', 'Param', 'ParamKind', 'QueryExecutor',
    'QueryOutcome', 'SchemaMaterializer', 'StoredResultSet',
    'GuildSQLError', 'ConfigurationError', 'ParameterError', 'UnsupportedParameterError',
    'ParameterCountError', 'ConnectionClosedError', 'QueryFailedError', 'MigrationError',
    'MigrationRunner', 'SeedRunner',
    'ColumnDeclaration', 'EntityDeclaration', 'EntityRegistry', 'default_registry',
    'OptOutRepository'
]
