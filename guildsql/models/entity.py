"""
Entity declarations and the entity registry.

An entity declaration describes a persisted table: its name and ordered
column list. Declarations are registered explicitly, usually at import time
of the module that defines them, and are read-only afterwards. The schema
materializer walks the registry in registration order.
"""

from typing import Dict, Iterator, List, Optional, Tuple
import threading

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..security import validate_identifier
from ..utils.type_mapping import ColumnType, TypeMapper


class ColumnDeclaration(BaseModel):
    """One column of an entity table."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Column name")
    type: ColumnType = Field(..., description="Semantic column type")
    length: Optional[int] = Field(None, gt=0, description="VARCHAR length")
    nullable: bool = Field(default=True, description="Whether NULL is allowed")
    primary_key: bool = Field(default=False, description="Part of the primary key")
    unique: bool = Field(default=False, description="Single column UNIQUE constraint")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return validate_identifier(v, 'column')

    @field_validator('type', mode='before')
    @classmethod
    def parse_type(cls, v):
        if isinstance(v, str) and not isinstance(v, ColumnType):
            return TypeMapper.parse(v)
        return v

    @classmethod
    def parse(cls, name: str, type_str: str, **flags) -> "ColumnDeclaration":
        """Shorthand: ``ColumnDeclaration.parse('GID', 'VARCHAR(40)')``."""
        return cls(
            name=name,
            type=TypeMapper.parse(type_str),
            length=TypeMapper.parse_length(type_str),
            **flags
        )


class EntityDeclaration(BaseModel):
    """A persisted table: name plus ordered columns."""

    model_config = ConfigDict(frozen=True)

    table_name: str = Field(..., description="Table name")
    columns: Tuple[ColumnDeclaration, ...] = Field(..., min_length=1, description="Ordered columns")

    @field_validator('table_name')
    @classmethod
    def validate_table_name(cls, v):
        return validate_identifier(v, 'table')

    @model_validator(mode='after')
    def check_unique_columns(self):
        seen = set()
        for column in self.columns:
            key = column.name.lower()
            if key in seen:
                raise ValueError(f"Duplicate column '{column.name}' in {self.table_name}")
            seen.add(key)
        return self

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @property
    def primary_key(self) -> List[str]:
        return [c.name for c in self.columns if c.primary_key]


class EntityRegistry:
    """
    Explicit registry of entity declarations.

    Keeps registration order. Registering the same declaration twice is a
    no-op; registering a different declaration under a taken table name is
    an error.
    """

    def __init__(self):
        self._entities: Dict[str, EntityDeclaration] = {}
        self._lock = threading.Lock()

    def register(self, declaration: EntityDeclaration) -> EntityDeclaration:
        """
        Register a declaration.

        Returns:
            The declaration, so modules can write ``X = registry.register(...)``

        Raises:
            ValueError: If another declaration already uses the table name
        """
        key = declaration.table_name.lower()
        with self._lock:
            existing = self._entities.get(key)
            if existing is not None and existing != declaration:
                raise ValueError(f"Table '{declaration.table_name}' is already registered")
            self._entities.setdefault(key, declaration)
        return declaration

    def declare(self, table_name: str, *columns: ColumnDeclaration) -> EntityDeclaration:
        """Build and register a declaration in one call."""
        return self.register(EntityDeclaration(table_name=table_name, columns=columns))

    def get(self, table_name: str) -> Optional[EntityDeclaration]:
        return self._entities.get(table_name.lower())

    def entities(self) -> List[EntityDeclaration]:
        """Declarations in registration order."""
        with self._lock:
            return list(self._entities.values())

    def __contains__(self, table_name: str) -> bool:
        return table_name.lower() in self._entities

    def __iter__(self) -> Iterator[EntityDeclaration]:
        return iter(self.entities())

    def __len__(self) -> int:
        return len(self._entities)


# Registry populated by guildsql.models.entities
default_registry = EntityRegistry()
