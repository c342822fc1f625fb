"""
Relation Card Cache.

Per-connection-string, time-bounded cache of introspected relation cards.
It is a pure performance optimization: nothing is persisted and a miss
simply costs one introspection.

Refresh is synchronous and triggered by the first request that sees a
stale or missing entry. Two requests that see staleness together may both
introspect; the later write replaces the earlier one.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence, Tuple

from ..adapters.database_adapter import RelationCard
from ..adapters.pools import mask_connection_string

logger = logging.getLogger("querygate.card_cache")

CardLoader = Callable[[str], Awaitable[Sequence[RelationCard]]]


@dataclass(frozen=True)
class CacheEntry:
    """Snapshot of one database's relation cards."""
    timestamp: float
    cards: Tuple[RelationCard, ...]


class RelationCardCache:
    """
    TTL cache of relation cards keyed by connection string.

    Entries are replaced whole, never merged, so a reader always sees one
    complete snapshot. With max_entries set, the least recently used
    connection string is dropped once the cache grows past it.
    """

    def __init__(
        self,
        ttl_seconds: float,
        loader: CardLoader,
        clock: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = None,
    ):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._loader = loader
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    async def get_entry(self, connection_string: str) -> CacheEntry:
        """Return a fresh entry, introspecting first if missing or older than the TTL."""
        with self._lock:
            entry = self._entries.get(connection_string)
            if entry is not None:
                self._entries.move_to_end(connection_string)
        if entry is not None and not self._is_stale(entry):
            logger.debug("Card cache HIT: %s", mask_connection_string(connection_string))
            return entry

        logger.info(
            "Card cache %s: %s",
            "MISS" if entry is None else "STALE",
            mask_connection_string(connection_string),
        )
        cards = await self._loader(connection_string)
        fresh = CacheEntry(timestamp=self._clock(), cards=tuple(cards))
        with self._lock:
            self._entries[connection_string] = fresh
            self._entries.move_to_end(connection_string)
            while self.max_entries is not None and len(self._entries) > self.max_entries:
                dropped, _ = self._entries.popitem(last=False)
                logger.debug("Card cache EVICT: %s", mask_connection_string(dropped))
        return fresh

    async def get_cards(self, connection_string: str) -> Tuple[RelationCard, ...]:
        """Relation cards for a database, never older than the TTL."""
        entry = await self.get_entry(connection_string)
        return entry.cards

    def peek(self, connection_string: str) -> Optional[CacheEntry]:
        """Current entry without refreshing (may be stale)."""
        with self._lock:
            return self._entries.get(connection_string)

    def invalidate(self, connection_string: str) -> None:
        with self._lock:
            self._entries.pop(connection_string, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_stale(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp > self.ttl_seconds
