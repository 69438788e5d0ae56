"""
Schema materializer.

Creates the fixed bookkeeping tables and one table per registered entity
with ``CREATE TABLE IF NOT EXISTS``. Column types are compiled against the
live engine's dialect. A table that cannot be created is logged and
skipped; the remaining tables are still attempted.
"""

from typing import Dict, Iterable, List, Optional
import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Dialect as SQLAlchemyDialect

from ..config.logging_config import DatabaseLoggerAdapter
from ..models.entities import BOOKKEEPING_TABLES
from ..models.entity import EntityDeclaration, EntityRegistry, default_registry
from ..utils.type_mapping import TypeMapper
from .executor import QueryExecutor


def build_create_statement(declaration: EntityDeclaration, dialect: SQLAlchemyDialect) -> str:
    """
    ``CREATE TABLE IF NOT EXISTS`` for a declaration.

    Args:
        declaration: Entity declaration
        dialect: Dialect used to render column types

    Returns:
        DDL statement
    """
    parts = []
    for column in declaration.columns:
        definition = f"{column.name} {TypeMapper.render(column.type, dialect, column.length)}"
        if not column.nullable:
            definition += " NOT NULL"
        if column.unique:
            definition += " UNIQUE"
        parts.append(definition)

    if declaration.primary_key:
        parts.append(f"PRIMARY KEY ({', '.join(declaration.primary_key)})")

    return f"CREATE TABLE IF NOT EXISTS {declaration.table_name} ({', '.join(parts)})"


class SchemaMaterializer:
    """Creates missing tables at startup."""

    def __init__(self, executor: QueryExecutor, registry: Optional[EntityRegistry] = None,
                 bookkeeping: Iterable[EntityDeclaration] = BOOKKEEPING_TABLES):
        """
        Initialize materializer.

        Args:
            executor: Executor used for the DDL
            registry: Entity registry (defaults to the bot's registry)
            bookkeeping: Fixed tables created before any entity
        """
        self.executor = executor
        self.registry = registry if registry is not None else default_registry
        self.bookkeeping = tuple(bookkeeping)
        self.logger = DatabaseLoggerAdapter(
            logging.getLogger('db.schema'),
            dict(executor.connection.logger.extra)
        )

    def create_tables(self) -> Dict[str, bool]:
        """
        Create bookkeeping and entity tables that do not exist yet.

        Returns:
            Table name -> whether its CREATE statement completed. Empty when
            there is no connection.
        """
        connection = self.executor.connection
        handle = connection.current_handle()
        if handle is None or not connection.is_connected():
            self.logger.warning("Skipping table creation, database is not connected")
            return {}

        dialect = handle.engine.dialect
        results: Dict[str, bool] = {}

        for declaration in self.bookkeeping:
            results[declaration.table_name] = self._create(declaration, dialect)

        for declaration in self.registry.entities():
            self.logger.info(f"Creating table {declaration.table_name}")
            results[declaration.table_name] = self._create(declaration, dialect)

        failed = [name for name, ok in results.items() if not ok]
        if failed:
            self.logger.warning(f"Couldn't create {len(failed)} table(s): {', '.join(failed)}")
        else:
            self.logger.info(f"Schema ready: {len(results)} tables")

        return results

    def _create(self, declaration: EntityDeclaration, dialect: SQLAlchemyDialect) -> bool:
        try:
            statement = build_create_statement(declaration, dialect)
        except Exception as e:
            self.logger.error(f"Couldn't build {declaration.table_name} table: {e}")
            return False

        outcome = self.executor.execute(statement)
        if not outcome.ok:
            self.logger.warning(f"Couldn't create {declaration.table_name} table")
        return outcome.ok

    def existing_tables(self) -> List[str]:
        """Table names currently present in the database."""
        handle = self.executor.connection.current_handle()
        if handle is None or not handle.is_open():
            return []
        try:
            return inspect(handle.engine).get_table_names()
        except Exception as e:
            self.logger.error(f"Couldn't list tables: {e}")
            return []
