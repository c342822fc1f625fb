"""End-to-end pipeline tests on a SQLite database with the mock generator."""

import asyncio
import sqlite3

import pytest

from querygate.adapters import PoolRegistry, create_pool
from querygate.errors import ClientInputError, ConnectivityError, GuardRejectionError
from querygate.executor import QueryExecutor
from querygate.generator import GeneratedSQL, MockGenerator
from querygate.orchestrator import QueryPipeline


class FixedGenerator(MockGenerator):
    """Returns the same statement for every phrase."""

    def __init__(self, sql, params=None):
        super().__init__()
        self.sql = sql
        self.params = params or []
        self.calls = 0

    def generate_sql(self, phrase, cards, card_names, param_style=None):
        self.calls += 1
        return GeneratedSQL(sql=self.sql, params=list(self.params))


class ChurningGenerator(MockGenerator):
    """Opens a pool for another database while the request is between stages."""

    def __init__(self, registry, target, other):
        super().__init__()
        self.registry = registry
        self.target = target
        self.other = other
        self.evicted = None

    def generate_sql(self, phrase, cards, card_names, param_style=None):
        self.evicted = self.registry.get_pool(self.target)
        self.registry.get_pool(self.other)
        return super().generate_sql(phrase, cards, card_names, param_style)


def _pipeline(generator=None, max_bytes=5 * 1024 * 1024):
    registry = PoolRegistry(capacity=2, max_connections=2, pool_factory=create_pool)
    executor = QueryExecutor(max_limit=1000, statement_timeout_ms=3000, max_response_bytes=max_bytes)
    return QueryPipeline(
        registry,
        generator or MockGenerator(),
        executor,
        default_connection_string="",
    )


@pytest.fixture
def other_db(tmp_path) -> str:
    path = tmp_path / "other.db"
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT)")
    conn.commit()
    conn.close()
    return f"sqlite:///{path}"


@pytest.fixture
def pipeline():
    p = _pipeline()
    yield p
    p.registry.close_all()


class TestRunQuery:
    def test_last_n_orders(self, pipeline, shop_db):
        result = asyncio.run(pipeline.run_query("last 2 paid orders", shop_db))

        assert result.sql == "SELECT * FROM main.orders ORDER BY main.orders.created_at DESC LIMIT 2"
        assert [row["id"] for row in result.rows] == [4, 3]
        assert result.row_count == 2
        assert result.truncated is False

    def test_registry_and_cache_populated(self, pipeline, shop_db):
        asyncio.run(pipeline.run_query("customers", shop_db))
        assert shop_db in pipeline.registry
        entry = pipeline.card_cache.peek(shop_db)
        assert {c.name for c in entry.cards} == {"main.customers", "main.orders", "main.paid_orders"}

        asyncio.run(pipeline.run_query("customers", shop_db))
        assert pipeline.card_cache.peek(shop_db) is entry

    def test_default_connection_string(self, shop_db):
        p = _pipeline()
        p.default_connection_string = shop_db
        try:
            result = asyncio.run(p.run_query("customers by city"))
        finally:
            p.registry.close_all()
        assert result.sql.endswith("LIMIT 100")
        assert result.row_count == 3

    def test_params_bound_with_adapter_style(self, shop_db):
        generator = FixedGenerator("SELECT email FROM main.customers WHERE city = ?", ["floripa"])
        p = _pipeline(generator)
        try:
            result = asyncio.run(p.run_query("floripa customers", shop_db))
        finally:
            p.registry.close_all()
        assert sorted(r["email"] for r in result.rows) == ["a@example.com", "b@example.com"]

    def test_guard_rejection(self, shop_db):
        generator = FixedGenerator("DELETE FROM main.orders")
        p = _pipeline(generator)
        try:
            with pytest.raises(GuardRejectionError):
                asyncio.run(p.run_query("remove everything", shop_db))
        finally:
            p.registry.close_all()
        assert generator.calls == 1

    def test_truncation(self, shop_db):
        p = _pipeline(FixedGenerator("SELECT * FROM main.orders"), max_bytes=150)
        try:
            result = asyncio.run(p.run_query("orders", shop_db))
        finally:
            p.registry.close_all()
        assert result.truncated is True
        assert 1 <= result.row_count < 4
        assert result.row_count == len(result.rows)


class TestValidation:
    @pytest.mark.parametrize("phrase", ["", "x" * 2001, None])
    def test_invalid_phrase(self, pipeline, shop_db, phrase):
        with pytest.raises(ClientInputError):
            asyncio.run(pipeline.run_query(phrase, shop_db))
        assert len(pipeline.registry) == 0

    def test_phrase_at_maximum_length(self, pipeline, shop_db):
        result = asyncio.run(pipeline.run_query("x" * 2000, shop_db))
        assert result.sql

    def test_missing_connection_string(self, pipeline):
        with pytest.raises(ClientInputError, match="Missing db_url"):
            asyncio.run(pipeline.run_query("customers"))

    def test_unreachable_database(self, pipeline, tmp_path):
        with pytest.raises(ConnectivityError):
            asyncio.run(pipeline.run_query("customers", f"sqlite:///{tmp_path / 'gone.db'}"))
        assert len(pipeline.registry) == 0
        assert len(pipeline.card_cache) == 0


class TestExplainAndCards:
    def test_explain(self, pipeline, shop_db):
        explanation = asyncio.run(pipeline.explain("how are orders linked to customers?", shop_db))
        assert "main.orders.customer_id -> main.customers.id" in explanation.answer
        assert "main.orders" in explanation.references

    def test_select_cards(self, pipeline, shop_db):
        cards = asyncio.run(pipeline.select_cards("customers email", shop_db, k=1))
        assert [c.name for c in cards] == ["main.customers"]


class TestPoolChurn:
    def test_eviction_mid_request_does_not_interrupt_it(self, shop_db, other_db):
        registry = PoolRegistry(capacity=1, max_connections=2, pool_factory=create_pool)
        generator = ChurningGenerator(registry, shop_db, other_db)
        executor = QueryExecutor(max_limit=1000, statement_timeout_ms=3000, max_response_bytes=5 * 1024 * 1024)
        p = QueryPipeline(registry, generator, executor, default_connection_string="")
        try:
            result = asyncio.run(p.run_query("customers", shop_db))

            assert result.row_count == 3
            assert registry.keys() == [other_db]
            # torn down once the request let go of it
            assert generator.evicted.closed
            assert generator.evicted.released
            assert generator.evicted.holders == 0
        finally:
            registry.close_all()

    def test_next_request_gets_a_fresh_pool(self, shop_db, other_db):
        p = _pipeline()
        p.registry = PoolRegistry(capacity=1, max_connections=2, pool_factory=create_pool)
        try:
            asyncio.run(p.run_query("customers", shop_db))
            first = p.registry.get_pool(shop_db)
            p.registry.get_pool(other_db)
            result = asyncio.run(p.run_query("customers", shop_db))
            assert result.row_count == 3
            assert p.registry.get_pool(shop_db) is not first
        finally:
            p.registry.close_all()

    def test_card_cache_is_bounded_by_registry_capacity(self, shop_db, other_db):
        registry = PoolRegistry(capacity=1, max_connections=2, pool_factory=create_pool)
        executor = QueryExecutor(max_limit=1000, statement_timeout_ms=3000, max_response_bytes=5 * 1024 * 1024)
        p = QueryPipeline(registry, MockGenerator(), executor, default_connection_string="")
        try:
            asyncio.run(p.get_cards(shop_db))
            asyncio.run(p.get_cards(other_db))
        finally:
            registry.close_all()
        assert len(p.card_cache) == 1
        assert p.card_cache.peek(shop_db) is None
        assert [c.name for c in p.card_cache.peek(other_db).cards] == ["main.notes"]
