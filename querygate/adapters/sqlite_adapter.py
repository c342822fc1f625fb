"""
SQLite Introspection Adapter.

Implements IntrospectionAdapter for SQLite databases.
Used for local development, offline demos and tests.

Every relation lives in the "main" schema. Row estimates come from
sqlite_stat1 when the file has been analyzed; otherwise they are absent.
"""

import logging
import sqlite3
import time
from typing import List, Dict, Any, Optional, Sequence

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
)

logger = logging.getLogger("querygate.adapters.sqlite")

MAIN_SCHEMA = "main"

# Progress handler granularity (SQLite VM instructions between checks)
PROGRESS_STEPS = 1000


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


class SQLiteAdapter(IntrospectionAdapter):
    """
    SQLite implementation of IntrospectionAdapter.

    Features:
    - File-based database (no server required), opened read-only by the pool
    - PRAGMA-based introspection of columns, primary keys, indexes, foreign keys
    - Statement timeout through a progress handler, removed after each call
    """

    param_style = "?"

    def test_connection(self) -> None:
        self._query("SELECT 1")

    def list_relations(self) -> List[RelationSummary]:
        rows = self._query("""
            SELECT name, type FROM sqlite_master
            WHERE type IN ('table', 'view') AND name NOT LIKE 'sqlite_%'
            ORDER BY name
        """)
        return [
            RelationSummary(
                name=f"{MAIN_SCHEMA}.{r['name']}",
                kind=RelationKind.VIEW if r["type"] == "view" else RelationKind.TABLE,
            )
            for r in rows
        ]

    def describe_relation(self, name: str) -> RelationCard:
        table = self._table_name(name)
        with self.pool.connection() as conn:
            try:
                kind_row = conn.execute(
                    "SELECT type FROM sqlite_master WHERE name = ? AND type IN ('table', 'view')",
                    (table,),
                ).fetchone()
                if kind_row is None:
                    raise QueryExecutionError(f"Relation not found: {name}")

                column_rows = conn.execute(f"PRAGMA main.table_info({_quote(table)})").fetchall()
                indexed = self._indexed_columns(conn, table)
                row_estimate = self._row_estimate(conn, table)
            except sqlite3.Error as e:
                raise QueryExecutionError(f"SQLite introspection failed: {e}")

        columns = tuple(
            ColumnMeta(
                name=col["name"],
                type=col["type"] or "",
                pk=col["pk"] > 0,
                indexed=col["name"] in indexed or col["pk"] > 0,
                nullable=not col["notnull"] and not col["pk"],
            )
            for col in column_rows
        )
        kind = RelationKind.VIEW if kind_row["type"] == "view" else RelationKind.TABLE
        return RelationCard(name=name, kind=kind, columns=columns, row_estimate=row_estimate)

    def list_relationships(self) -> List[Relationship]:
        relationships = []
        with self.pool.connection() as conn:
            try:
                tables = [
                    r["name"] for r in conn.execute("""
                        SELECT name FROM sqlite_master
                        WHERE type = 'table' AND name NOT LIKE 'sqlite_%'
                        ORDER BY name
                    """).fetchall()
                ]
                for table in tables:
                    for fk in conn.execute(f"PRAGMA main.foreign_key_list({_quote(table)})").fetchall():
                        to_column = fk["to"] or self._primary_key(conn, fk["table"])
                        if to_column is None:
                            continue
                        relationships.append(Relationship(
                            from_relation=f"{MAIN_SCHEMA}.{table}",
                            from_column=fk["from"],
                            to_relation=f"{MAIN_SCHEMA}.{fk['table']}",
                            to_column=to_column,
                        ))
            except sqlite3.Error as e:
                raise QueryExecutionError(f"SQLite introspection failed: {e}")
        return relationships

    def run_select(
        self,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        max_rows: Optional[int] = None,
    ) -> ExecutionResult:
        """Execute a guarded SELECT, interrupting it once the declared timeout passes."""
        with self.pool.connection() as conn:
            timed_out = False
            if self.timeout_ms > 0:
                deadline = time.monotonic() + self.timeout_ms / 1000.0

                def _check_deadline() -> int:
                    nonlocal timed_out
                    timed_out = time.monotonic() > deadline
                    return 1 if timed_out else 0

                conn.set_progress_handler(_check_deadline, PROGRESS_STEPS)
            try:
                logger.debug("sql_try: %s params=%s", sql, list(params or []))
                cursor = conn.execute(sql, tuple(params or ()))
                if cursor.description is None:
                    rows = []
                else:
                    columns = [col[0] for col in cursor.description]
                    fetched = cursor.fetchmany(max_rows) if max_rows is not None else cursor.fetchall()
                    rows = [dict(zip(columns, row)) for row in fetched]
                cursor.close()
                return ExecutionResult(rows=rows, row_count=len(rows))
            except sqlite3.OperationalError as e:
                if timed_out:
                    logger.warning("Statement interrupted after %dms", self.timeout_ms)
                    raise QueryTimeoutError(f"Statement exceeded the {self.timeout_ms}ms timeout")
                logger.warning("SQLite query failed: %s", e)
                raise QueryExecutionError(_sanitized(e))
            except sqlite3.Error as e:
                logger.warning("SQLite query failed: %s", e)
                raise QueryExecutionError(_sanitized(e))
            finally:
                conn.set_progress_handler(None, 0)

    def _query(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        with self.pool.connection() as conn:
            try:
                return [dict(row) for row in conn.execute(sql, params).fetchall()]
            except sqlite3.DatabaseError as e:
                raise DatabaseConnectionError(f"SQLite unavailable: {e}")

    @staticmethod
    def _table_name(name: str) -> str:
        schema, _, table = name.partition(".")
        if not table or schema != MAIN_SCHEMA:
            raise QueryExecutionError(f"Relation name must be qualified with '{MAIN_SCHEMA}.': {name}")
        return table

    @staticmethod
    def _indexed_columns(conn: sqlite3.Connection, table: str) -> set:
        columns = set()
        for index in conn.execute(f"PRAGMA main.index_list({_quote(table)})").fetchall():
            for info in conn.execute(f"PRAGMA main.index_info({_quote(index['name'])})").fetchall():
                if info["name"] is not None:
                    columns.add(info["name"])
        return columns

    @staticmethod
    def _primary_key(conn: sqlite3.Connection, table: str) -> Optional[str]:
        for col in conn.execute(f"PRAGMA main.table_info({_quote(table)})").fetchall():
            if col["pk"] == 1:
                return col["name"]
        return None

    @staticmethod
    def _row_estimate(conn: sqlite3.Connection, table: str) -> Optional[int]:
        """First figure of sqlite_stat1.stat for the table, if ANALYZE has ever run."""
        has_stats = conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'sqlite_stat1'"
        ).fetchone()
        if not has_stats:
            return None
        row = conn.execute(
            "SELECT stat FROM sqlite_stat1 WHERE tbl = ? ORDER BY idx IS NOT NULL LIMIT 1",
            (table,),
        ).fetchone()
        if row is None or not row["stat"]:
            return None
        head = str(row["stat"]).split()[0]
        return int(head) if head.isdigit() and int(head) > 0 else None


def _sanitized(error: "sqlite3.Error") -> str:
    """Client-facing message: SQLite result code name, never raw engine text."""
    # sqlite_errorname exists on Python 3.11+; older interpreters only give the class
    code = getattr(error, "sqlite_errorname", None) or error.__class__.__name__
    return f"Query failed ({code})"
