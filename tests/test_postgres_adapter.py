"""PostgreSQL adapter tests. Require TEST_PG_URL pointing at a disposable database."""

import asyncio
import os

import pytest

TEST_PG_URL = os.getenv("TEST_PG_URL") or os.getenv("PG_URL")

pytestmark = pytest.mark.skipif(not TEST_PG_URL, reason="TEST_PG_URL not set")

SEED_SQL = """
CREATE SCHEMA IF NOT EXISTS public;
CREATE TABLE IF NOT EXISTS public.customers(
    id serial primary key,
    email text not null,
    city text
);
CREATE TABLE IF NOT EXISTS public.orders(
    id serial primary key,
    customer_id int references public.customers(id),
    total_cents int not null,
    paid boolean default true,
    created_at timestamptz default now()
);
TRUNCATE public.orders, public.customers RESTART IDENTITY;
INSERT INTO public.customers(email, city) VALUES
    ('a@example.com','floripa'),('b@example.com','floripa'),('c@example.com','porto alegre');
INSERT INTO public.orders(customer_id, total_cents, paid) VALUES
    (1, 1000, true),(1, 2000, true),(2, 3000, false),(3, 4000, true);
"""


@pytest.fixture(scope="module")
def seeded():
    import psycopg2

    conn = psycopg2.connect(TEST_PG_URL)
    try:
        with conn, conn.cursor() as cursor:
            cursor.execute(SEED_SQL)
    finally:
        conn.close()
    return TEST_PG_URL


@pytest.fixture
def pool(seeded):
    from querygate.adapters import create_pool

    p = create_pool(seeded, max_connections=2)
    yield p
    p.close()


@pytest.fixture
def adapter(seeded, pool):
    from querygate.adapters import create_adapter

    return create_adapter(seeded, pool)


class TestPostgresAdapter:
    def test_test_connection(self, adapter):
        adapter.test_connection()

    def test_list_relations_excludes_system_schemas(self, adapter):
        names = [r.name for r in adapter.list_relations()]
        assert "public.customers" in names
        assert "public.orders" in names
        assert not any(n.startswith(("pg_catalog.", "information_schema.")) for n in names)

    def test_describe_relation(self, adapter):
        card = adapter.describe_relation("public.orders")
        columns = {c.name: c for c in card.columns}
        assert columns["id"].pk and columns["id"].indexed
        assert not columns["total_cents"].nullable
        assert columns["created_at"].nullable

    def test_join_hints(self, adapter):
        from querygate.schema import build_cards

        cards = {c.name: c for c in asyncio.run(build_cards(adapter))}
        assert "public.orders.customer_id -> public.customers.id" in cards["public.orders"].join_hints

    def test_run_select(self, adapter):
        adapter.set_timeout_ms(3000)
        result = adapter.run_select("SELECT email FROM public.customers WHERE city = %s ORDER BY id", ["floripa"])
        assert [r["email"] for r in result.rows] == ["a@example.com", "b@example.com"]

    def test_statement_timeout_and_reset(self, adapter, pool):
        from querygate.adapters import QueryTimeoutError

        adapter.set_timeout_ms(100)
        with pytest.raises(QueryTimeoutError):
            adapter.run_select("SELECT pg_sleep(2)")

        with pool.connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute("SHOW statement_timeout")
                row = cursor.fetchone()
        assert row["statement_timeout"] != "100ms"

    def test_connections_are_read_only(self, adapter):
        from querygate.errors import ExecutionError

        with pytest.raises(ExecutionError):
            adapter.run_select("SELECT * FROM public.customers FOR UPDATE")
