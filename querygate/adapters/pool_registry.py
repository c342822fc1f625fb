"""
Connection Pool Registry.

Bounded least-recently-used map from connection string to a live pool.
It caps the number of databases that hold open connections at once and
owns the lifecycle of every pool it creates: creation on first lookup,
close on eviction, close on shutdown. A pool taken with acquire() stays
usable for its holder after eviction until the holder releases it.

The registry is an explicit object created once at process start (see the
API lifespan) rather than module-level state.
"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Callable, List

from .pools import mask_connection_string

logger = logging.getLogger("querygate.pool_registry")

PoolFactory = Callable[[str, int], Any]


class PoolRegistry:
    """
    LRU cache of connection pools.

    Mutations are serialized by an internal lock; callers never hold one.
    Pool construction (network I/O) happens outside the lock so a slow
    database does not stall lookups for others.
    """

    def __init__(self, capacity: int, max_connections: int, pool_factory: PoolFactory):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.max_connections = max_connections
        self._pool_factory = pool_factory
        self._pools: "OrderedDict[str, Any]" = OrderedDict()
        self._lock = threading.Lock()

    def get_pool(self, connection_string: str) -> Any:
        """
        Return the pool for a connection string, creating it if needed.

        Raises:
            ConnectivityError: If a new pool cannot be constructed
        """
        return self._lookup(connection_string, retain=False)

    def acquire(self, connection_string: str) -> Any:
        """
        Like get_pool(), but the pool is retained for the caller.

        An eviction that happens before the caller's release() only stops
        future lookups from seeing the pool; the caller keeps working on it.
        Every acquire() must be paired with pool.release().
        """
        return self._lookup(connection_string, retain=True)

    def _lookup(self, connection_string: str, retain: bool) -> Any:
        # Pools are retained under the registry lock, while still mapped,
        # so an eviction can never tear one down between lookup and retain
        with self._lock:
            pool = self._pools.get(connection_string)
            if pool is not None:
                self._pools.move_to_end(connection_string)
                if retain:
                    pool.retain()
                return pool

        created = self._pool_factory(connection_string, self.max_connections)

        evicted = []
        with self._lock:
            existing = self._pools.get(connection_string)
            if existing is not None:
                # Another caller won the race; keep theirs
                self._pools.move_to_end(connection_string)
                pool, duplicate = existing, created
            else:
                self._pools[connection_string] = created
                pool, duplicate = created, None
                while len(self._pools) > self.capacity:
                    evicted.append(self._pools.popitem(last=False))
            if retain:
                pool.retain()

        if duplicate is not None:
            duplicate.close()
        for key, old_pool in evicted:
            logger.info("Evicting pool (LRU): %s", mask_connection_string(key))
            old_pool.close()
        if duplicate is None:
            logger.info("Created pool: %s", mask_connection_string(connection_string))
        return pool

    def close_all(self) -> None:
        """Close and forget every pool (process shutdown)."""
        with self._lock:
            pools = list(self._pools.values())
            self._pools.clear()
        for pool in pools:
            pool.close()
        logger.info("Closed %d pool(s)", len(pools))

    def keys(self) -> List[str]:
        """Connection strings from least to most recently used."""
        with self._lock:
            return list(self._pools.keys())

    def __contains__(self, connection_string: str) -> bool:
        with self._lock:
            return connection_string in self._pools

    def __len__(self) -> int:
        with self._lock:
            return len(self._pools)
