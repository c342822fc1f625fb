"""
Introspection Adapter Layer for QueryGate.

This module provides a uniform interface for catalog introspection and
guarded read-only execution, allowing the pipeline to work with different
database backends (SQLite for local development, Postgres for production).

Design Principles:
- The pipeline NEVER touches a driver directly
- All database operations go through adapters bound to a pooled connection source
- Adapters handle error translation, schema introspection, and statement timeouts
- New backends are added by implementing this contract, never by branching in the pipeline
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, Sequence, Tuple
from dataclasses import dataclass, field, asdict
from enum import Enum

from ..errors import ConnectivityError, ExecutionError, StatementTimeoutError


# Postgres catalog namespaces; never introspected and denied by the guard.
SYSTEM_SCHEMAS: Tuple[str, ...] = ("pg_catalog", "information_schema")


class RelationKind(str, Enum):
    """Kind of relation exposed to the generator."""
    TABLE = "table"
    VIEW = "view"


@dataclass(frozen=True)
class ColumnMeta:
    """One column of a relation card."""
    name: str
    type: str
    pk: bool = False
    indexed: bool = False
    nullable: bool = True


@dataclass(frozen=True)
class RelationCard:
    """
    Structural and statistical summary of one table or view.

    Immutable once built: the aggregation step produces new cards with
    join hints instead of mutating the ones returned by describe_relation().
    """
    name: str
    kind: RelationKind
    columns: Tuple[ColumnMeta, ...] = ()
    join_hints: Tuple[str, ...] = ()
    row_estimate: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["columns"] = [asdict(c) for c in self.columns]
        data["join_hints"] = list(self.join_hints)
        if self.row_estimate is None:
            data.pop("row_estimate")
        return data


@dataclass(frozen=True)
class RelationSummary:
    """Entry returned by list_relations()."""
    name: str
    kind: RelationKind


@dataclass(frozen=True)
class Relationship:
    """Directed foreign-key edge between two relations."""
    from_relation: str
    from_column: str
    to_relation: str
    to_column: str

    def join_hint(self) -> str:
        return f"{self.from_relation}.{self.from_column} -> {self.to_relation}.{self.to_column}"


@dataclass
class ExecutionResult:
    """Rows returned by run_select()."""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0


# Driver-level failures are translated into the pipeline taxonomy.

class DatabaseConnectionError(ConnectivityError):
    """Failed to connect to database."""
    pass


class QueryExecutionError(ExecutionError):
    """Query execution failed."""
    pass


class QueryTimeoutError(StatementTimeoutError):
    """Statement exceeded the declared timeout."""
    pass


def schema_of(relation_name: str) -> str:
    """Schema part of a schema-qualified relation name."""
    schema, _, _ = relation_name.partition(".")
    return schema


class IntrospectionAdapter(ABC):
    """
    Abstract base class for introspection adapters.

    An adapter is bound to one connection pool. Instances are cheap and
    request-scoped; the pool behind them is shared and owned by the
    PoolRegistry.
    """

    # Names the guard refuses to see qualified in generated SQL
    system_schemas: Tuple[str, ...] = SYSTEM_SCHEMAS
    # Placeholder syntax the generator must use for bind parameters
    param_style: str = "%s"

    def __init__(self, pool, timeout_ms: int = 0):
        self.pool = pool
        self._timeout_ms = timeout_ms

    @abstractmethod
    def test_connection(self) -> None:
        """Fail with DatabaseConnectionError if the backend is unreachable."""
        pass

    @abstractmethod
    def list_relations(self) -> List[RelationSummary]:
        """Every table/view/materialized view outside system schemas, ordered by schema then name."""
        pass

    @abstractmethod
    def describe_relation(self, name: str) -> RelationCard:
        """
        Describe one schema-qualified relation.

        Returns:
            RelationCard with columns, key/index flags, nullability and
            row estimate. join_hints is left empty.
        """
        pass

    @abstractmethod
    def list_relationships(self) -> List[Relationship]:
        """Every foreign-key edge between non-system relations."""
        pass

    def set_timeout_ms(self, ms: int) -> None:
        """
        Declare the statement timeout for subsequent run_select() calls.

        Nothing is sent to the database here; the value is consumed at
        execution time.
        """
        self._timeout_ms = max(0, int(ms))

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    @abstractmethod
    def run_select(
        self,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        max_rows: Optional[int] = None,
    ) -> ExecutionResult:
        """
        Execute a previously validated read-only statement.

        The declared timeout applies to this call only and the connection's
        default is restored before it returns to the pool, on every exit path.

        Args:
            sql: Guarded SQL statement
            params: Optional bind parameters in this adapter's param_style
            max_rows: Fetch at most this many rows

        Returns:
            ExecutionResult with rows as dictionaries keyed by column name
        """
        pass
