"""
Adapters module for QueryGate.

Contains:
1. The introspection contract and its value objects
2. Backend implementations (SQLite, Postgres)
3. Connection pools and the LRU pool registry
"""

from .database_adapter import (
    IntrospectionAdapter,
    RelationCard,
    RelationKind,
    RelationSummary,
    Relationship,
    ColumnMeta,
    ExecutionResult,
    DatabaseConnectionError,
    QueryExecutionError,
    QueryTimeoutError,
    SYSTEM_SCHEMAS,
)
from .sqlite_adapter import SQLiteAdapter
from .postgres_adapter import PostgresAdapter
from .pools import ConnectionPool, PostgresPool, SQLitePool, mask_connection_string
from .pool_registry import PoolRegistry
from .factory import create_pool, create_adapter, register_backend, list_backends

__all__ = [
    # Contract
    "IntrospectionAdapter",
    "RelationCard",
    "RelationKind",
    "RelationSummary",
    "Relationship",
    "ColumnMeta",
    "ExecutionResult",
    "DatabaseConnectionError",
    "QueryExecutionError",
    "QueryTimeoutError",
    "SYSTEM_SCHEMAS",
    # Backends
    "SQLiteAdapter",
    "PostgresAdapter",
    # Pools
    "ConnectionPool",
    "PostgresPool",
    "SQLitePool",
    "PoolRegistry",
    "mask_connection_string",
    # Factory
    "create_pool",
    "create_adapter",
    "register_backend",
    "list_backends",
]
