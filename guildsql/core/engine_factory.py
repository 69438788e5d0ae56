"""
Database engine factory.

Builds the dialect-specific SQLAlchemy URL from a ``ConnectionConfig`` and
creates an engine whose pool is capped at the configured size.
"""

from pathlib import Path
from typing import Dict, Any
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, URL
from sqlalchemy.pool import QueuePool

from ..config.db_config import ConnectionConfig, Dialect

logger = logging.getLogger('db.engine_factory')


class DatabaseFactory:
    """Factory for SQLAlchemy engines, one per supported dialect."""

    @staticmethod
    def build_url(config: ConnectionConfig) -> URL:
        """
        Build the connection URL for the configured dialect.

        Args:
            config: Connection configuration

        Returns:
            SQLAlchemy URL (credentials are escaped by ``URL.create``)
        """
        if config.dialect is Dialect.EMBEDDED_FILE:
            # Requires duckdb-engine
            return URL.create('duckdb', database=config.storage_path)
        elif config.dialect is Dialect.SINGLE_FILE_ENGINE:
            return URL.create('sqlite', database=config.storage_path)
        elif config.dialect is Dialect.NETWORKED_SERVER:
            return URL.create(
                'postgresql+psycopg2',
                username=config.user,
                password=config.password or None,
                host=config.host,
                port=config.port,
                database=config.database,
            )
        raise ValueError(f"Unsupported dialect: {config.dialect}")

    @staticmethod
    def get_engine_args(config: ConnectionConfig) -> Dict[str, Any]:
        """
        Engine arguments for a fixed-size pool.

        ``max_overflow`` is 0 so ``pool_size`` is the hard maximum. Explicit
        ``engine_args`` from the configuration win over the defaults.
        """
        engine_args: Dict[str, Any] = {
            'poolclass': QueuePool,
            'pool_size': config.pool_size,
            'max_overflow': 0,
            'pool_timeout': config.pool_timeout,
            'pool_pre_ping': True,
            'echo': False,
        }
        if config.dialect is Dialect.SINGLE_FILE_ENGINE:
            # Pooled connections are shared across the bot's handler threads
            engine_args['connect_args'] = {'check_same_thread': False}
        engine_args.update(config.engine_args)
        return engine_args

    @staticmethod
    def create_engine(config: ConnectionConfig) -> Engine:
        """
        Create an engine for the configured dialect.

        File based dialects get their parent directory created first.
        """
        if config.dialect.is_file_based and config.storage_path != ':memory:':
            Path(config.storage_path).parent.mkdir(parents=True, exist_ok=True)

        url = DatabaseFactory.build_url(config)
        logger.info(f"Creating {config.dialect.value} engine: {url.render_as_string(hide_password=True)}")
        engine = create_engine(url, **DatabaseFactory.get_engine_args(config))
        if config.dialect is Dialect.SINGLE_FILE_ENGINE:
            DatabaseFactory._enable_transactional_ddl(engine)
        return engine

    @staticmethod
    def _enable_transactional_ddl(engine: Engine) -> None:
        """
        Let SQLAlchemy emit BEGIN for pysqlite.

        The sqlite3 module only opens transactions before DML, so DDL in a
        migration would commit on its own. With the driver's transaction
        handling disabled every ``engine.begin()`` block covers DDL too.
        """
        @event.listens_for(engine, "connect")
        def _disable_driver_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

    @staticmethod
    def get_supported_dialects() -> list:
        return [d.value for d in Dialect]
