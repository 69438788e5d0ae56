"""
Type mapping utilities for different database engines.

Entity columns are declared with a semantic ``ColumnType``. The mapper turns
it into an SQLAlchemy type and compiles that against the live engine's
dialect, so ``BLOB`` becomes ``BYTEA`` on PostgreSQL and ``DOUBLE`` becomes
``DOUBLE PRECISION`` without per-dialect branches in the materializer.
"""

from enum import Enum
from typing import Optional
import logging

from sqlalchemy import types
from sqlalchemy.engine import Dialect as SQLAlchemyDialect

logger = logging.getLogger(__name__)


class ColumnType(str, Enum):
    """Semantic column types available to entity declarations."""
    VARCHAR = "varchar"
    TEXT = "text"
    INTEGER = "integer"
    BIGINT = "bigint"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    BLOB = "blob"
    TIMESTAMP = "timestamp"    # epoch milliseconds, stored as BIGINT
    JSON = "json"              # serialized document, stored as BLOB


# Default VARCHAR length when a declaration gives none
DEFAULT_VARCHAR_LENGTH = 255


class TypeMapper:
    """Maps semantic column types to SQLAlchemy types and dialect DDL."""

    TYPE_MAPPING = {
        ColumnType.TEXT: types.Text,
        ColumnType.INTEGER: types.Integer,
        ColumnType.BIGINT: types.BigInteger,
        ColumnType.FLOAT: types.Float,
        ColumnType.DOUBLE: types.Double,
        ColumnType.BOOLEAN: types.Boolean,
        ColumnType.BLOB: types.LargeBinary,
        ColumnType.TIMESTAMP: types.BigInteger,
        ColumnType.JSON: types.LargeBinary,
    }

    # Aliases accepted when parsing a type name
    ALIASES = {
        'string': ColumnType.VARCHAR,
        'int': ColumnType.INTEGER,
        'long': ColumnType.BIGINT,
        'real': ColumnType.DOUBLE,
        'bool': ColumnType.BOOLEAN,
        'binary': ColumnType.BLOB,
        'datetime': ColumnType.TIMESTAMP,
    }

    @classmethod
    def parse(cls, type_str: str) -> ColumnType:
        """
        Parse a type name such as ``VARCHAR(40)`` or ``bigint``.

        The length in parentheses is ignored here; see ``parse_length``.

        Raises:
            ValueError: If the name is unknown
        """
        name = type_str.lower().strip().split('(')[0].strip()
        if name in cls.ALIASES:
            return cls.ALIASES[name]
        try:
            return ColumnType(name)
        except ValueError:
            raise ValueError(f"Unknown column type '{type_str}'") from None

    @staticmethod
    def parse_length(type_str: str) -> Optional[int]:
        """Length from ``VARCHAR(40)`` style names, if any."""
        if '(' not in type_str:
            return None
        inner = type_str.split('(', 1)[1].rstrip(') ').strip()
        return int(inner) if inner.isdigit() else None

    @classmethod
    def to_sqlalchemy(cls, column_type: ColumnType, length: Optional[int] = None) -> types.TypeEngine:
        """SQLAlchemy type instance for a semantic type."""
        if column_type is ColumnType.VARCHAR:
            return types.String(length or DEFAULT_VARCHAR_LENGTH)
        return cls.TYPE_MAPPING[column_type]()

    @classmethod
    def render(cls, column_type: ColumnType, dialect: SQLAlchemyDialect,
               length: Optional[int] = None) -> str:
        """
        DDL type string for a dialect.

        Args:
            column_type: Semantic type
            dialect: SQLAlchemy dialect of the live engine
            length: Optional VARCHAR length

        Returns:
            Type as it appears in CREATE TABLE
        """
        return cls.to_sqlalchemy(column_type, length).compile(dialect=dialect)
