"""
Query Executor.

Runs a generated statement through the guard, executes it under a
per-statement timeout and shapes the result to a response byte budget.

Truncation slices rows already in memory and never re-runs the query; the
measured size is that of a JSON serialization, an approximation of the
transport size rather than a guarantee.
"""

import asyncio
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .adapters.database_adapter import IntrospectionAdapter
from .guards.sql_guard import validate_sql

logger = logging.getLogger("querygate.executor")

SHRINK_FACTOR = 0.7


@dataclass
class QueryResult:
    """Shaped result of one guarded query."""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    sql: str = ""
    truncated: bool = False


def json_default(value: Any) -> str:
    """Render non-JSON row values the way the API sends them: binary as hex, the rest with str()."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return value.hex()
    return str(value)


def serialized_size(rows: Sequence[Dict[str, Any]]) -> int:
    """UTF-8 byte length of the rows as JSON."""
    return len(json.dumps(list(rows), default=json_default).encode("utf-8"))


def shape_rows(rows: List[Dict[str, Any]], max_bytes: int) -> Tuple[List[Dict[str, Any]], bool]:
    """
    Shrink rows until they serialize within max_bytes or one row remains.

    Each pass keeps floor(n * 0.7) rows (at least one). Terminates after
    O(log n) passes.

    Returns:
        (rows, truncated) where truncated is True whenever the original
        set was over budget
    """
    size = serialized_size(rows)
    if size <= max_bytes:
        return rows, False

    n = len(rows)
    while n > 1 and size > max_bytes:
        n = max(1, math.floor(n * SHRINK_FACTOR))
        rows = rows[:n]
        size = serialized_size(rows)
    return rows, True


class QueryExecutor:
    """
    Guard, execute and shape.

    Example:
        executor = QueryExecutor(max_limit=1000, statement_timeout_ms=3000,
                                 max_response_bytes=5 * 1024 * 1024)
        result = await executor.execute(adapter, "SELECT * FROM public.orders")
        result.sql  # "SELECT * FROM public.orders LIMIT 1000"
    """

    def __init__(self, max_limit: int, statement_timeout_ms: int, max_response_bytes: int):
        self.max_limit = max_limit
        self.statement_timeout_ms = statement_timeout_ms
        self.max_response_bytes = max_response_bytes

    def prepare(self, adapter: IntrospectionAdapter, sql: str) -> str:
        """
        Validate and normalize a statement without running it.

        Raises:
            GuardRejectionError: Statement failed a safety check or its LIMIT exceeds the maximum
        """
        return validate_sql(sql, self.max_limit, adapter.system_schemas)

    async def execute(
        self,
        adapter: IntrospectionAdapter,
        sql: str,
        params: Optional[Sequence[Any]] = None,
    ) -> QueryResult:
        """
        Run one generated statement end to end.

        Raises:
            GuardRejectionError: Rejected before any database contact
            StatementTimeoutError: Statement exceeded the timeout
            ExecutionError: Runtime database error (sanitized)
        """
        final_sql = self.prepare(adapter, sql)

        adapter.set_timeout_ms(self.statement_timeout_ms)
        # fetch never exceeds max_limit even if the only LIMIT sits in a subquery
        result = await asyncio.to_thread(adapter.run_select, final_sql, list(params or []), self.max_limit)

        rows, truncated = shape_rows(result.rows, self.max_response_bytes)
        if truncated:
            logger.info(
                "Response truncated from %d to %d row(s) (budget %d bytes)",
                len(result.rows), len(rows), self.max_response_bytes,
            )
        return QueryResult(
            rows=rows,
            row_count=len(rows) if truncated else result.row_count,
            sql=final_sql,
            truncated=truncated,
        )
