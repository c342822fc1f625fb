"""
Query Pipeline.

Wires the stages together for one request, in a fixed order:

    validate -> pre-flight -> cards (cached) -> selection -> generator
             -> guard -> execution -> shaping

Each stage either hands a value to the next or raises a QueryGateError;
nothing is retried and nothing is partially returned.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Tuple

from configs import (
    CACHE_POOL_SIZE,
    CARDS_TTL_SECONDS,
    DATABASE_URL,
    DEFAULT_TOP_K,
    MAX_LIMIT,
    MAX_PHRASE_LENGTH,
    MAX_RESPONSE_BYTES,
    POOL_MAX,
    STATEMENT_TIMEOUT_MS,
    validate_configuration,
)
from ..adapters.database_adapter import IntrospectionAdapter, RelationCard
from ..adapters.factory import create_adapter, create_pool
from ..adapters.pool_registry import PoolRegistry
from ..errors import ClientInputError
from ..executor import QueryExecutor, QueryResult
from ..generator import get_generator
from ..generator.base import Explanation, SQLGenerator
from ..schema.card_cache import RelationCardCache
from ..schema.cards import build_cards
from ..schema.relevance import pick_top_k

logger = logging.getLogger("querygate.pipeline")


class QueryPipeline:
    """
    Phrase-to-rows pipeline over any registered backend.

    Example:
        registry = PoolRegistry(capacity=8, max_connections=10, pool_factory=create_pool)
        pipeline = QueryPipeline(registry, MockGenerator(), QueryExecutor(1000, 3000, 5 * 1024 * 1024))
        result = await pipeline.run_query("last 10 orders", "sqlite:///data/shop.db")
    """

    def __init__(
        self,
        registry: PoolRegistry,
        generator: SQLGenerator,
        executor: QueryExecutor,
        card_cache: Optional[RelationCardCache] = None,
        cards_ttl_seconds: float = CARDS_TTL_SECONDS,
        top_k: int = DEFAULT_TOP_K,
        default_connection_string: Optional[str] = None,
        max_phrase_length: int = MAX_PHRASE_LENGTH,
    ):
        self.registry = registry
        self.generator = generator
        self.executor = executor
        if card_cache is None:
            # one entry per database the registry can hold a pool for
            card_cache = RelationCardCache(
                cards_ttl_seconds, self._load_cards, max_entries=registry.capacity
            )
        self.card_cache = card_cache
        self.top_k = top_k
        self.default_connection_string = (
            DATABASE_URL if default_connection_string is None else default_connection_string
        )
        self.max_phrase_length = max_phrase_length

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def lease_adapter(self, connection_string: str) -> AsyncIterator[IntrospectionAdapter]:
        """
        Adapter bound to the registry's pool for this connection string.

        The pool is retained until the block exits, so an LRU eviction
        triggered by another request meanwhile does not interrupt this one.
        """
        pool = await asyncio.to_thread(self.registry.acquire, connection_string)
        try:
            yield create_adapter(connection_string, pool)
        finally:
            pool.release()

    async def _load_cards(self, connection_string: str) -> Tuple[RelationCard, ...]:
        async with self.lease_adapter(connection_string) as adapter:
            return await build_cards(adapter)

    async def get_cards(self, connection_string: str) -> Tuple[RelationCard, ...]:
        return await self.card_cache.get_cards(connection_string)

    async def select_cards(
        self,
        phrase: str,
        connection_string: str,
        k: Optional[int] = None,
    ) -> List[RelationCard]:
        cards = await self.get_cards(connection_string)
        return pick_top_k(cards, phrase, k or self.top_k)

    def _validate(self, phrase, connection_string: Optional[str]) -> str:
        if not isinstance(phrase, str) or not 1 <= len(phrase) <= self.max_phrase_length:
            raise ClientInputError("Invalid phrase")
        if connection_string is not None and not isinstance(connection_string, str):
            raise ClientInputError("Invalid db_url")
        target = connection_string or self.default_connection_string
        if not target:
            raise ClientInputError("Missing db_url")
        return target

    async def _prepare(self, adapter: IntrospectionAdapter, phrase: str, target: str):
        await asyncio.to_thread(adapter.test_connection)

        cards = await self.get_cards(target)
        selected = pick_top_k(cards, phrase, self.top_k)
        names = [card.name for card in selected]
        return selected, names

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def run_query(self, phrase: str, connection_string: Optional[str] = None) -> QueryResult:
        """
        Answer a phrase with rows.

        Raises:
            ClientInputError: Bad phrase or no connection target
            ConnectivityError: Database unreachable
            GuardRejectionError: Generated SQL rejected (includes contract failures)
            GeneratorUnavailableError: Generator could not be reached
            ExecutionError: Database error while running the statement
        """
        started = time.perf_counter()
        target = self._validate(phrase, connection_string)

        async with self.lease_adapter(target) as adapter:
            selected, names = await self._prepare(adapter, phrase, target)
            generated = await asyncio.to_thread(
                self.generator.generate_sql, phrase, selected, names, adapter.param_style
            )
            result = await self.executor.execute(adapter, generated.sql, generated.params)

        duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "query_ok phrase=%r chosen_cards=%s sql=%r row_count=%d truncated=%s duration_ms=%d",
            phrase, names, result.sql, result.row_count, result.truncated, duration_ms,
        )
        return result

    async def explain(self, phrase: str, connection_string: Optional[str] = None) -> Explanation:
        """Answer a question about the schema without executing anything."""
        started = time.perf_counter()
        target = self._validate(phrase, connection_string)

        async with self.lease_adapter(target) as adapter:
            selected, names = await self._prepare(adapter, phrase, target)
        explanation = await asyncio.to_thread(
            self.generator.generate_explanation, phrase, selected, names
        )

        duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "explain_ok phrase=%r chosen_cards=%s duration_ms=%d",
            phrase, names, duration_ms,
        )
        return explanation


def build_pipeline(generator: Optional[SQLGenerator] = None) -> QueryPipeline:
    """Pipeline from environment configuration."""
    registry = PoolRegistry(
        capacity=CACHE_POOL_SIZE,
        max_connections=POOL_MAX,
        pool_factory=create_pool,
    )
    executor = QueryExecutor(
        max_limit=MAX_LIMIT,
        statement_timeout_ms=STATEMENT_TIMEOUT_MS,
        max_response_bytes=MAX_RESPONSE_BYTES,
    )
    validate_configuration(require_generator=generator is None)
    return QueryPipeline(registry, generator or get_generator(), executor)
