"""
Startup facade for the bot's database.

``SQLConnector.start()`` opens the pool, creates missing tables and applies
outstanding migrations and seeds. Every step is logged; none of them raises,
so the bot keeps running without a database and queries are skipped until a
connection has been made at least once.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from .config.db_config import ConnectionConfig
from .core.connection import ConnectionManager
from .core.executor import QueryExecutor, QueryOutcome
from .core.result_set import StoredResultSet
from .core.schema import SchemaMaterializer
from .migrations.migration_runner import MIGRATIONS_DIR, SEEDS_DIR, MigrationRunner, SeedRunner, Unit
from .models.entity import EntityRegistry

logger = logging.getLogger('db.connector')


class SQLConnector:
    """Owns the connection manager, executor and startup sequence."""

    def __init__(self, config: ConnectionConfig,
                 registry: Optional[EntityRegistry] = None,
                 migrations_dir: Union[str, Path] = MIGRATIONS_DIR,
                 seeds_dir: Union[str, Path] = SEEDS_DIR):
        """
        Initialize connector. Does not connect.

        Args:
            config: Connection configuration
            registry: Entity registry (defaults to the bot's registry)
            migrations_dir: Directory with migration files
            seeds_dir: Directory with seed files
        """
        self.config = config
        self.connection = ConnectionManager(config)
        self.executor = QueryExecutor(self.connection)
        self.schema = SchemaMaterializer(self.executor, registry)
        self.migrations = MigrationRunner(self.executor, migrations_dir)
        self.seeds = SeedRunner(self.executor, seeds_dir)

        self.tables: Dict[str, bool] = {}
        self.applied_migrations: List[Unit] = []
        self.applied_seeds: List[Unit] = []

    def start(self) -> bool:
        """
        Connect, create tables, run migrations and then seeds.

        Returns:
            True if the connection was established
        """
        if not self.connection.connect():
            logger.error("Database is not available, queries will be skipped")
            return False

        try:
            self.tables = self.schema.create_tables()
        except Exception as e:
            logger.error(f"Error while creating tables: {e}")

        try:
            self.applied_migrations = self.migrations.run()
        except Exception as e:
            logger.error(f"Error while running migrations: {e}")

        try:
            self.applied_seeds = self.seeds.run()
        except Exception as e:
            logger.error(f"Error while running seeds: {e}")

        logger.info(
            f"Database ready: {len(self.tables)} tables checked, "
            f"{len(self.applied_migrations)} migrations and {len(self.applied_seeds)} seeds applied"
        )
        return True

    def execute(self, sql: str, *args: Any) -> QueryOutcome:
        """Execute one statement. See ``QueryExecutor.execute``."""
        return self.executor.execute(sql, *args)

    def query_sql(self, sql: str, *args: Any) -> Optional[StoredResultSet]:
        """Execute one statement and return its result set, if any."""
        return self.executor.query_sql(sql, *args)

    def is_connected(self) -> bool:
        return self.connection.is_connected()

    def close(self) -> None:
        self.connection.close()

    def get_status(self) -> Dict[str, Any]:
        """Connection, query, migration and seed status."""
        return {
            'connection': self.connection.connection_info(),
            'queries': self.executor.get_performance_stats(),
            'migrations': self.migrations.get_status(),
            'seeds': self.seeds.get_status(),
        }

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
