"""Tests for relation card aggregation."""

import asyncio

import pytest

from querygate.adapters.database_adapter import (
    ColumnMeta,
    ExecutionResult,
    IntrospectionAdapter,
    QueryExecutionError,
    RelationCard,
    RelationKind,
    RelationSummary,
    Relationship,
)
from querygate.schema import attach_join_hints, build_cards


class FakeAdapter(IntrospectionAdapter):
    """In-memory adapter with two tables, one view and a stray system edge."""

    def __init__(self, fail_on=None):
        super().__init__(pool=None)
        self.fail_on = fail_on

    def test_connection(self):
        pass

    def list_relations(self):
        return [
            RelationSummary("public.customers", RelationKind.TABLE),
            RelationSummary("public.orders", RelationKind.TABLE),
            RelationSummary("public.paid_orders", RelationKind.VIEW),
        ]

    def describe_relation(self, name):
        if name == self.fail_on:
            raise QueryExecutionError(f"cannot describe {name}")
        return RelationCard(
            name=name,
            kind=RelationKind.VIEW if name.endswith("paid_orders") else RelationKind.TABLE,
            columns=(ColumnMeta("id", "integer", pk=True, indexed=True, nullable=False),),
        )

    def list_relationships(self):
        return [
            Relationship("public.orders", "customer_id", "public.customers", "id"),
            Relationship("public.orders", "id", "pg_catalog.pg_class", "oid"),
        ]

    def run_select(self, sql, params=None, max_rows=None):
        return ExecutionResult(rows=[], row_count=0)


class TestAttachJoinHints:
    def test_outbound_edges_only(self):
        cards = [
            RelationCard("public.customers", RelationKind.TABLE),
            RelationCard("public.orders", RelationKind.TABLE),
        ]
        edges = [Relationship("public.orders", "customer_id", "public.customers", "id")]
        result = {c.name: c.join_hints for c in attach_join_hints(cards, edges)}
        assert result["public.orders"] == ("public.orders.customer_id -> public.customers.id",)
        assert result["public.customers"] == ()

    def test_system_schema_edges_dropped(self):
        cards = [RelationCard("public.orders", RelationKind.TABLE)]
        edges = [Relationship("public.orders", "id", "information_schema.tables", "x")]
        result = attach_join_hints(cards, edges, ("pg_catalog", "information_schema"))
        assert result[0].join_hints == ()

    def test_input_cards_not_mutated(self):
        card = RelationCard("public.orders", RelationKind.TABLE)
        edges = [Relationship("public.orders", "customer_id", "public.customers", "id")]
        attach_join_hints([card], edges)
        assert card.join_hints == ()


class TestBuildCards:
    def test_one_card_per_relation_in_listing_order(self):
        cards = asyncio.run(build_cards(FakeAdapter()))
        assert [c.name for c in cards] == ["public.customers", "public.orders", "public.paid_orders"]
        assert cards[2].kind == RelationKind.VIEW

    def test_join_hints_attached_without_system_edges(self):
        cards = {c.name: c for c in asyncio.run(build_cards(FakeAdapter()))}
        assert cards["public.orders"].join_hints == (
            "public.orders.customer_id -> public.customers.id",
        )

    def test_all_or_nothing(self):
        with pytest.raises(QueryExecutionError):
            asyncio.run(build_cards(FakeAdapter(fail_on="public.orders")))
