"""
Conftest for QueryGate tests.

Ensures the project root is on sys.path so that 'querygate' and 'configs'
resolve without installation, and provides a small SQLite shop database.
"""

import sqlite3
import sys
from pathlib import Path

import pytest

# Add project root to sys.path
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from querygate.adapters.database_adapter import ColumnMeta, RelationCard, RelationKind  # noqa: E402


SHOP_SCHEMA = """
CREATE TABLE customers (
    id     INTEGER PRIMARY KEY,
    email  TEXT NOT NULL,
    city   TEXT
);

CREATE TABLE orders (
    id           INTEGER PRIMARY KEY,
    customer_id  INTEGER REFERENCES customers(id),
    total_cents  INTEGER NOT NULL,
    paid         BOOLEAN DEFAULT 1,
    created_at   TEXT
);

CREATE INDEX idx_orders_customer ON orders(customer_id);

CREATE VIEW paid_orders AS
    SELECT id, customer_id, total_cents, created_at FROM orders WHERE paid = 1;

INSERT INTO customers (email, city) VALUES
    ('a@example.com', 'floripa'),
    ('b@example.com', 'floripa'),
    ('c@example.com', 'porto alegre');

INSERT INTO orders (customer_id, total_cents, paid, created_at) VALUES
    (1, 1000, 1, '2024-01-01 10:00:00'),
    (1, 2000, 1, '2024-01-02 10:00:00'),
    (2, 3000, 0, '2024-01-03 10:00:00'),
    (3, 4000, 1, '2024-01-04 10:00:00');
"""


@pytest.fixture
def shop_db(tmp_path) -> str:
    """Connection string for a freshly seeded SQLite shop database."""
    path = tmp_path / "shop.db"
    conn = sqlite3.connect(path)
    conn.executescript(SHOP_SCHEMA)
    conn.commit()
    conn.close()
    return f"sqlite:///{path}"


@pytest.fixture
def shop_cards():
    """Relation cards equivalent to the shop database, without touching it."""
    customers = RelationCard(
        name="public.customers",
        kind=RelationKind.TABLE,
        columns=(
            ColumnMeta("id", "integer", pk=True, indexed=True, nullable=False),
            ColumnMeta("email", "text", nullable=False),
            ColumnMeta("city", "text"),
        ),
        row_estimate=3,
    )
    orders = RelationCard(
        name="public.orders",
        kind=RelationKind.TABLE,
        columns=(
            ColumnMeta("id", "integer", pk=True, indexed=True, nullable=False),
            ColumnMeta("customer_id", "integer", indexed=True),
            ColumnMeta("total_cents", "integer", nullable=False),
            ColumnMeta("paid", "boolean"),
            ColumnMeta("created_at", "timestamptz"),
        ),
        join_hints=("public.orders.customer_id -> public.customers.id",),
        row_estimate=4,
    )
    return [customers, orders]
