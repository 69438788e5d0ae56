"""
Database configuration management.

This module handles database-specific configuration:
- Connection settings and dialect selection
- Default values for guildsql.yaml
- Logging configuration integration
"""

from .db_config import (
    ConnectionConfig, Dialect, DATABASE_DEFAULTS, LOGGING_DEFAULTS,
    get_default_config, validate_config
)
from .logging_config import setup_db_logging, DatabaseLoggerAdapter

__all__ = [
    'ConnectionConfig',
    'Dialect',
    'DATABASE_DEFAULTS',
    'LOGGING_DEFAULTS',
    'get_default_config',
    'validate_config',
    'setup_db_logging',
    'DatabaseLoggerAdapter'
]
