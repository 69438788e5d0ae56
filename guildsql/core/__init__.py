"""
Core database components.

This module contains:
- Connection management with a replaceable pool handle
- Engine construction per dialect
- Positional parameter binding
- Query execution with reconnect-and-retry
- Stored result sets
- Schema materialization
"""

from .result_set import StoredResultSet
from .binder import Blob, Param, ParamKind, ParameterBinder
from .engine_factory import DatabaseFactory
from .connection import ConnectionManager, ConnectionState, PoolHandle
from .executor import QueryExecutor, QueryOutcome, OutcomeStatus, MAX_RETRIES
from .schema import SchemaMaterializer, build_create_statement

__all__ = [
    'StoredResultSet',
    'Blob', 'Param', 'ParamKind', 'ParameterBinder',
    'DatabaseFactory',
    'ConnectionManager', 'ConnectionState', 'PoolHandle',
    'QueryExecutor', 'QueryOutcome', 'OutcomeStatus', 'MAX_RETRIES',
    'SchemaMaterializer', 'build_create_statement'
]
