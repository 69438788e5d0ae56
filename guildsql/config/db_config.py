"""
Database configuration settings.

This module defines the connection configuration record and the default
settings for each supported dialect. Values are usually loaded from
guildsql.yaml through ``DatabaseConfigManager``; logging levels live in the
``logging`` section of the same file.
"""

from copy import deepcopy
from enum import Enum
from typing import Dict, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..exceptions import ConfigurationError


class Dialect(str, Enum):
    """Supported database engines."""
    EMBEDDED_FILE = "embedded-file"            # DuckDB file database
    SINGLE_FILE_ENGINE = "single-file-engine"  # SQLite file database
    NETWORKED_SERVER = "networked-server"      # PostgreSQL server

    @property
    def is_file_based(self) -> bool:
        return self is not Dialect.NETWORKED_SERVER

    @classmethod
    def parse(cls, value: Any) -> "Dialect":
        """Resolve a configured dialect name or alias (case-insensitive)."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key in DIALECT_ALIASES:
            return DIALECT_ALIASES[key]
        raise ConfigurationError(
            f"Unsupported dialect '{value}'. Expected one of: {sorted(DIALECT_ALIASES)}"
        )


DIALECT_ALIASES = {
    'embedded-file': Dialect.EMBEDDED_FILE,
    'duckdb': Dialect.EMBEDDED_FILE,
    'h2': Dialect.EMBEDDED_FILE,
    'single-file-engine': Dialect.SINGLE_FILE_ENGINE,
    'sqlite': Dialect.SINGLE_FILE_ENGINE,
    'networked-server': Dialect.NETWORKED_SERVER,
    'postgresql': Dialect.NETWORKED_SERVER,
    'postgres': Dialect.NETWORKED_SERVER,
}

DEFAULT_STORAGE_PATH = "storage/guildsql.db"

# Defaults for the database section of guildsql.yaml
DATABASE_DEFAULTS = {
    'dialect': Dialect.EMBEDDED_FILE.value,
    'host': 'localhost',
    'port': 5432,
    'name': 'guildsql',
    'user': 'guildsql',
    'password': '',
    'pool_size': 10,                   # Fixed maximum number of pooled connections
    'pool_timeout': 30,                # Seconds to wait for a free pooled connection
    'storage_path': DEFAULT_STORAGE_PATH,
    'slow_query_threshold': 1.0,       # Log queries slower than this (seconds)
}

LOGGING_DEFAULTS = {
    'level': 'INFO',
    'file': None,                      # Optional log file path
}


class ConnectionConfig(BaseModel):
    """
    Immutable connection configuration.

    Created once at process start and owned by the connection manager.
    ``storage_path`` is only used by the file based dialects; host, port and
    credentials only by the networked server.
    """

    model_config = ConfigDict(frozen=True)

    user: str = Field(default=DATABASE_DEFAULTS['user'], description="Database user name")
    database: str = Field(default=DATABASE_DEFAULTS['name'], description="Database name")
    password: str = Field(default=DATABASE_DEFAULTS['password'], repr=False, description="Database password")
    host: str = Field(default=DATABASE_DEFAULTS['host'], description="Database server host")
    port: int = Field(default=DATABASE_DEFAULTS['port'], ge=1, le=65535, description="Database server port")
    dialect: Dialect = Field(default=Dialect.EMBEDDED_FILE, description="Database engine")
    pool_size: int = Field(default=DATABASE_DEFAULTS['pool_size'], ge=1, description="Maximum pooled connections")
    pool_timeout: float = Field(default=DATABASE_DEFAULTS['pool_timeout'], gt=0, description="Pool checkout timeout")
    storage_path: str = Field(default=DEFAULT_STORAGE_PATH, description="File used by file based dialects")
    slow_query_threshold: float = Field(default=DATABASE_DEFAULTS['slow_query_threshold'], gt=0)
    engine_args: Dict[str, Any] = Field(default_factory=dict, description="Extra create_engine arguments")

    @field_validator('dialect', mode='before')
    @classmethod
    def parse_dialect(cls, v):
        """Accept dialect aliases such as 'sqlite' or 'duckdb'."""
        return Dialect.parse(v)

    @field_validator('storage_path')
    @classmethod
    def validate_storage_path(cls, v):
        if not v or not v.strip():
            raise ValueError('storage_path must not be empty')
        return v

    @classmethod
    def from_section(cls, section: Dict[str, Any]) -> "ConnectionConfig":
        """
        Build a configuration from the ``database`` section of guildsql.yaml.

        Args:
            section: Mapping using the YAML key names (``name`` for the database)

        Returns:
            ConnectionConfig instance
        """
        values = deepcopy(DATABASE_DEFAULTS)
        values.update({k: v for k, v in section.items() if v is not None})
        return cls(
            user=str(values['user']),
            database=str(values['name']),
            password=str(values['password']),
            host=str(values['host']),
            port=int(values['port']),
            dialect=values['dialect'],
            pool_size=int(values['pool_size']),
            pool_timeout=float(values['pool_timeout']),
            storage_path=str(values['storage_path']),
            slow_query_threshold=float(values['slow_query_threshold']),
            engine_args=dict(values.get('engine_args') or {}),
        )


def get_default_config(dialect: str = Dialect.EMBEDDED_FILE.value,
                       storage_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Get a default configuration dictionary in guildsql.yaml layout.

    Args:
        dialect: Dialect name or alias
        storage_path: Optional database file path for file based dialects

    Returns:
        Configuration dictionary with ``database`` and ``logging`` sections
    """
    database = deepcopy(DATABASE_DEFAULTS)
    database['dialect'] = Dialect.parse(dialect).value
    if storage_path:
        database['storage_path'] = storage_path
    return {
        'database': database,
        'logging': deepcopy(LOGGING_DEFAULTS),
    }


def validate_config(config: ConnectionConfig) -> None:
    """
    Cross-field checks that pydantic field validators cannot express.

    Raises:
        ConfigurationError: If the networked dialect lacks server details
    """
    if config.dialect is Dialect.NETWORKED_SERVER:
        if not config.host:
            raise ConfigurationError("networked-server dialect requires a host")
        if not config.database:
            raise ConfigurationError("networked-server dialect requires a database name")
