"""
Bounded connection pools, one class per backend.

A pool hands out connections through a scoped context manager so the
connection always goes back (or is discarded) on every exit path.
Acquisition blocks while all connections are checked out.

Closing a pool is graceful: connections already checked out keep working
and are closed when returned. A holder that retained the pool before it
was closed (a request between stages) may still check out connections.
Resources are released once no connection is out and no holder remains.
"""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List

import psycopg2
from psycopg2 import pool as pg_pool
from psycopg2.extras import RealDictCursor

from .database_adapter import DatabaseConnectionError

logger = logging.getLogger("querygate.pools")

SQLITE_PREFIX = "sqlite:///"


class ConnectionPool(ABC):
    """Shared bookkeeping: slot semaphore, in-flight count, holders, graceful close."""

    def __init__(self, connection_string: str, max_connections: int):
        if max_connections < 1:
            raise ValueError("max_connections must be >= 1")
        self.connection_string = connection_string
        self.max_connections = max_connections
        self._slots = threading.BoundedSemaphore(max_connections)
        self._lock = threading.Lock()
        self._in_use = 0
        self._holders = 0
        self._closed = False
        self._released = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def released(self) -> bool:
        """True once the underlying connections have been torn down."""
        return self._released

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def holders(self) -> int:
        return self._holders

    def retain(self) -> None:
        """
        Keep the pool usable for the caller until release(), even across close().

        Raises:
            DatabaseConnectionError: The pool has already been torn down
        """
        with self._lock:
            if self._released:
                raise DatabaseConnectionError("Connection pool has been closed")
            self._holders += 1

    def release(self) -> None:
        """Drop a hold taken with retain()."""
        with self._lock:
            if self._holders == 0:
                raise RuntimeError("release() without a matching retain()")
            self._holders -= 1
            teardown = self._teardown_due()
        if teardown:
            self._closeall()

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Check out one connection for the duration of the block."""
        self._slots.acquire()
        try:
            conn = self._checkout()
            try:
                yield conn
            finally:
                self._checkin(conn)
        finally:
            self._slots.release()

    def close(self) -> None:
        """Stop handing out connections and release resources once drained."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            in_flight, holders = self._in_use, self._holders
            teardown = self._teardown_due()
        if teardown:
            self._closeall()
        logger.info(
            "Pool closed (%d in flight, %d holder(s)): %s",
            in_flight,
            holders,
            mask_connection_string(self.connection_string),
        )

    def _teardown_due(self) -> bool:
        # caller holds self._lock
        if self._closed and not self._released and self._in_use == 0 and self._holders == 0:
            self._released = True
            return True
        return False

    def _checkout(self) -> Any:
        with self._lock:
            if self._released:
                raise DatabaseConnectionError("Connection pool has been closed")
            self._in_use += 1
        try:
            return self._getconn()
        except Exception:
            with self._lock:
                self._in_use -= 1
            raise

    def _checkin(self, conn: Any) -> None:
        with self._lock:
            self._in_use -= 1
            discard = self._closed
            teardown = self._teardown_due()
        self._putconn(conn, discard)
        if teardown:
            self._closeall()

    @abstractmethod
    def _getconn(self) -> Any:
        pass

    @abstractmethod
    def _putconn(self, conn: Any, discard: bool) -> None:
        pass

    @abstractmethod
    def _closeall(self) -> None:
        pass


class PostgresPool(ConnectionPool):
    """
    psycopg2 ThreadedConnectionPool behind a blocking slot semaphore.

    Connections are read-only and autocommit; RealDictCursor returns rows
    as dictionaries.
    """

    def __init__(self, connection_string: str, max_connections: int, connect_timeout: int = 10):
        super().__init__(connection_string, max_connections)
        try:
            # minconn=1 opens a connection now, so a bad URL fails here
            self._pool = pg_pool.ThreadedConnectionPool(
                1,
                max_connections,
                dsn=connection_string,
                cursor_factory=RealDictCursor,
                connect_timeout=connect_timeout,
            )
        except psycopg2.Error as e:
            raise DatabaseConnectionError(f"Failed to connect to PostgreSQL: {_first_line(e)}")

    def _getconn(self) -> Any:
        try:
            conn = self._pool.getconn()
        except (psycopg2.Error, pg_pool.PoolError) as e:
            raise DatabaseConnectionError(f"Failed to acquire PostgreSQL connection: {_first_line(e)}")
        if not conn.autocommit:
            conn.set_session(readonly=True, autocommit=True)
        return conn

    def _putconn(self, conn: Any, discard: bool) -> None:
        self._pool.putconn(conn, close=discard or bool(conn.closed))

    def _closeall(self) -> None:
        if not self._pool.closed:
            self._pool.closeall()


class SQLitePool(ConnectionPool):
    """
    Read-only SQLite connections for a file database.

    The sqlite3 module has no pool of its own; connections are opened with
    mode=ro and check_same_thread=False so worker threads can share them
    one at a time.
    """

    def __init__(self, connection_string: str, max_connections: int):
        super().__init__(connection_string, max_connections)
        self.file_path = sqlite_path(connection_string)
        if not Path(self.file_path).exists():
            raise DatabaseConnectionError(f"Database file not found: {self.file_path}")
        self._uri = Path(self.file_path).resolve().as_uri() + "?mode=ro"
        self._idle: List[sqlite3.Connection] = [self._open()]

    def _open(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self._uri, uri=True, check_same_thread=False)
        except sqlite3.Error as e:
            raise DatabaseConnectionError(f"Failed to connect to SQLite: {e}")
        conn.row_factory = sqlite3.Row
        return conn

    def _getconn(self) -> sqlite3.Connection:
        with self._lock:
            if self._idle:
                return self._idle.pop()
        return self._open()

    def _putconn(self, conn: sqlite3.Connection, discard: bool) -> None:
        if discard:
            conn.close()
            return
        with self._lock:
            self._idle.append(conn)

    def _closeall(self) -> None:
        with self._lock:
            idle, self._idle = self._idle, []
        for conn in idle:
            conn.close()


def sqlite_path(connection_string: str) -> str:
    """File path part of a sqlite:///path URL."""
    if not connection_string.startswith(SQLITE_PREFIX):
        raise DatabaseConnectionError("SQLite connection strings must start with sqlite:///")
    path = connection_string[len(SQLITE_PREFIX):]
    if not path:
        raise DatabaseConnectionError("SQLite connection string has no file path")
    return path


def mask_connection_string(connection_string: str) -> str:
    """Hide credentials before a connection string reaches the log."""
    scheme, sep, rest = connection_string.partition("://")
    if not sep or "@" not in rest:
        return connection_string
    return f"{scheme}://***@{rest.rsplit('@', 1)[1]}"


def _first_line(error: Exception) -> str:
    text = str(error).strip()
    return text.splitlines()[0] if text else error.__class__.__name__
