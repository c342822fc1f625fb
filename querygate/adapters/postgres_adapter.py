"""
PostgreSQL Introspection Adapter.

Implements IntrospectionAdapter for PostgreSQL via pg_catalog.
Used for cloud/production deployments.

Catalog queries read planner statistics (reltuples) for row estimates and
never trigger ANALYZE or COUNT(*).
"""

import logging
from typing import List, Any, Optional, Sequence

import psycopg2
from psycopg2 import errors as pg_errors

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

logger = logging.getLogger("querygate.adapters.postgres")

_SYSTEM_SCHEMA_LIST = ", ".join(f"'{s}'" for s in SYSTEM_SCHEMAS)

LIST_RELATIONS_SQL = f"""
    SELECT n.nspname AS schema, c.relname AS name,
           CASE c.relkind WHEN 'v' THEN 'view' WHEN 'm' THEN 'view' ELSE 'table' END AS kind
    FROM pg_class c
    JOIN pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname NOT IN ({_SYSTEM_SCHEMA_LIST})
      AND n.nspname NOT LIKE 'pg_toast%'
      AND n.nspname NOT LIKE 'pg_temp%'
      AND c.relkind IN ('r', 'v', 'm')
    ORDER BY 1, 2
"""

DESCRIBE_COLUMNS_SQL = """
    SELECT a.attname AS name,
           pg_catalog.format_type(a.atttypid, a.atttypmod) AS type,
           NOT a.attnotnull AS nullable,
           EXISTS (
             SELECT 1 FROM pg_index i
             WHERE i.indrelid = c.oid AND a.attnum = ANY(i.indkey) AND i.indisprimary
           ) AS pk,
           EXISTS (
             SELECT 1 FROM pg_index i
             WHERE i.indrelid = c.oid AND a.attnum = ANY(i.indkey) AND i.indisvalid
           ) AS indexed
    FROM pg_attribute a
    JOIN pg_class c ON c.oid = a.attrelid
    JOIN pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = %s AND c.relname = %s AND a.attnum > 0 AND NOT a.attisdropped
    ORDER BY a.attnum
"""

ROW_ESTIMATE_SQL = """
    SELECT c.reltuples::bigint AS row_estimate,
           CASE c.relkind WHEN 'v' THEN 'view' WHEN 'm' THEN 'view' ELSE 'table' END AS kind
    FROM pg_class c
    JOIN pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = %s AND c.relname = %s
"""

LIST_RELATIONSHIPS_SQL = f"""
    SELECT
      nf.nspname AS from_schema,
      cf.relname AS from_table,
      af.attname AS from_column,
      nt.nspname AS to_schema,
      ct.relname AS to_table,
      at2.attname AS to_column
    FROM pg_constraint con
    JOIN pg_class cf ON cf.oid = con.conrelid
    JOIN pg_namespace nf ON nf.oid = cf.relnamespace
    JOIN pg_class ct ON ct.oid = con.confrelid
    JOIN pg_namespace nt ON nt.oid = ct.relnamespace
    JOIN LATERAL unnest(con.conkey, con.confkey) AS k(from_num, to_num) ON true
    JOIN pg_attribute af ON af.attrelid = con.conrelid AND af.attnum = k.from_num
    JOIN pg_attribute at2 ON at2.attrelid = con.confrelid AND at2.attnum = k.to_num
    WHERE con.contype = 'f'
      AND nf.nspname NOT IN ({_SYSTEM_SCHEMA_LIST})
      AND nt.nspname NOT IN ({_SYSTEM_SCHEMA_LIST})
    ORDER BY 1, 2, 3
"""


class PostgresAdapter(IntrospectionAdapter):
    """
    PostgreSQL implementation of IntrospectionAdapter.

    Features:
    - Schema introspection via pg_catalog (tables, views, materialized views)
    - Row estimates from planner statistics
    - Per-call statement_timeout, reset to DEFAULT before the connection
      goes back to the pool
    - Parameterized queries (%s placeholders)
    """

    param_style = "%s"

    def test_connection(self) -> None:
        """Run SELECT 1 on a pooled connection."""
        self._query("SELECT 1")

    def list_relations(self) -> List[RelationSummary]:
        rows = self._query(LIST_RELATIONS_SQL)
        return [
            RelationSummary(name=f"{r['schema']}.{r['name']}", kind=RelationKind(r["kind"]))
            for r in rows
        ]

    def describe_relation(self, name: str) -> RelationCard:
        schema, _, relation = name.partition(".")
        if not relation:
            raise QueryExecutionError(f"Relation name must be schema-qualified: {name}")

        column_rows = self._query(DESCRIBE_COLUMNS_SQL, (schema, relation))
        estimate_rows = self._query(ROW_ESTIMATE_SQL, (schema, relation))

        columns = tuple(
            ColumnMeta(
                name=str(r["name"]),
                type=str(r["type"]),
                pk=bool(r["pk"]),
                indexed=bool(r["indexed"]),
                nullable=bool(r["nullable"]),
            )
            for r in column_rows
        )
        kind = RelationKind.TABLE
        row_estimate = None
        if estimate_rows:
            kind = RelationKind(estimate_rows[0]["kind"])
            # reltuples is -1 (or 0) until the table has been analyzed
            estimate = estimate_rows[0]["row_estimate"]
            if estimate is not None and int(estimate) > 0:
                row_estimate = int(estimate)

        return RelationCard(name=name, kind=kind, columns=columns, row_estimate=row_estimate)

    def list_relationships(self) -> List[Relationship]:
        rows = self._query(LIST_RELATIONSHIPS_SQL)
        return [
            Relationship(
                from_relation=f"{r['from_schema']}.{r['from_table']}",
                from_column=str(r["from_column"]),
                to_relation=f"{r['to_schema']}.{r['to_table']}",
                to_column=str(r["to_column"]),
            )
            for r in rows
        ]

    def run_select(
        self,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        max_rows: Optional[int] = None,
    ) -> ExecutionResult:
        """Execute a guarded SELECT under the declared statement_timeout."""
        with self.pool.connection() as conn:
            cursor = conn.cursor()
            try:
                # SET does not accept bind parameters; the value is an int we own
                cursor.execute(f"SET statement_timeout TO {int(self.timeout_ms)}")
                logger.debug("sql_try: %s params=%s", sql, list(params or []))
                if params:
                    cursor.execute(sql, tuple(params))
                else:
                    cursor.execute(sql)
                if cursor.description is None:
                    rows = []
                elif max_rows is not None:
                    rows = [_plain_row(row) for row in cursor.fetchmany(max_rows)]
                else:
                    rows = [_plain_row(row) for row in cursor.fetchall()]
                return ExecutionResult(rows=rows, row_count=len(rows))
            except pg_errors.QueryCanceled:
                logger.warning("Statement cancelled after %dms", self.timeout_ms)
                raise QueryTimeoutError(f"Statement exceeded the {self.timeout_ms}ms timeout")
            except psycopg2.Error as e:
                logger.warning("PostgreSQL query failed (%s): %s", e.pgcode, str(e).strip())
                raise QueryExecutionError(_sanitized(e))
            finally:
                _reset_timeout(conn, cursor)

    def _query(self, sql: str, params: Optional[tuple] = None) -> List[dict]:
        """Catalog query on a pooled connection."""
        with self.pool.connection() as conn:
            try:
                with conn.cursor() as cursor:
                    cursor.execute(sql, params)
                    return [dict(row) for row in cursor.fetchall()] if cursor.description else []
            except psycopg2.OperationalError as e:
                raise DatabaseConnectionError(f"PostgreSQL unavailable: {str(e).strip()}")
            except psycopg2.Error as e:
                logger.warning("Catalog query failed (%s): %s", e.pgcode, str(e).strip())
                raise QueryExecutionError(_sanitized(e))


def _reset_timeout(conn, cursor) -> None:
    """Restore the connection's default timeout; a broken connection is left for the pool to discard."""
    if conn.closed:
        return
    try:
        cursor.execute("SET statement_timeout TO DEFAULT")
    except psycopg2.Error as e:
        logger.warning("Could not reset statement_timeout: %s", str(e).strip())
    finally:
        cursor.close()


def _plain_row(row) -> dict:
    """Row as a dict, with bytea values (memoryview) copied into bytes."""
    return {key: bytes(value) if isinstance(value, memoryview) else value for key, value in row.items()}


def _sanitized(error: "psycopg2.Error") -> str:
    """Client-facing message: SQLSTATE only, never raw server text."""
    code = getattr(error, "pgcode", None)
    return f"Query failed (SQLSTATE {code})" if code else "Query failed"
