"""Tests for relevance selection."""

from querygate.adapters.database_adapter import ColumnMeta, RelationCard, RelationKind
from querygate.schema import pick_top_k, score_card, tokenize


def _card(name, columns=(), hints=(), rows=None):
    return RelationCard(
        name=name,
        kind=RelationKind.TABLE,
        columns=tuple(ColumnMeta(c, "text") for c in columns),
        join_hints=tuple(hints),
        row_estimate=rows,
    )


class TestTokenize:
    def test_lowercases_and_splits(self):
        assert tokenize("Last 10 PAID orders!") == ["last", "10", "paid", "orders"]

    def test_keeps_underscore_and_dot(self):
        assert tokenize("public.orders created_at?") == ["public.orders", "created_at"]

    def test_empty(self):
        assert tokenize("   ") == []


class TestScoreCard:
    def test_whole_word_hits_only(self):
        card = _card("public.orders", ["id", "paid"])
        assert score_card(card, ["pai"]) == 0
        assert score_card(card, ["paid"]) == 1

    def test_name_bonus(self):
        card = _card("public.orders", ["id"])
        # one whole-word hit on "orders" in the name plus the name bonus
        assert score_card(card, ["orders"]) == 1.5

    def test_substring_of_name_gets_bonus_without_hit(self):
        card = _card("public.orders", ["id"])
        assert score_card(card, ["order"]) == 0.5

    def test_join_hints_are_searched(self):
        card = _card("public.orders", ["id"], ["public.orders.customer_id -> public.customers.id"])
        assert score_card(card, ["customer_id"]) == 1

    def test_smaller_relations_get_an_edge(self):
        small = _card("public.a", rows=10)
        large = _card("public.b", rows=1_000_000)
        assert score_card(small, []) > score_card(large, []) > 0


class TestPickTopK:
    def test_most_relevant_first(self, shop_cards):
        picked = pick_top_k(shop_cards, "last 10 paid orders with emails", k=2)
        assert [c.name for c in picked] == ["public.orders", "public.customers"]

    def test_k_bounds_output(self, shop_cards):
        assert len(pick_top_k(shop_cards, "orders", k=1)) == 1

    def test_k_floor_is_one(self, shop_cards):
        assert len(pick_top_k(shop_cards, "orders", k=0)) == 1

    def test_ties_broken_by_name(self):
        cards = [_card("public.b"), _card("public.a"), _card("public.c")]
        assert [c.name for c in pick_top_k(cards, "nothing matches", k=3)] == [
            "public.a", "public.b", "public.c",
        ]

    def test_deterministic(self, shop_cards):
        first = pick_top_k(shop_cards, "customers by city", k=6)
        second = pick_top_k(list(reversed(shop_cards)), "customers by city", k=6)
        assert first == second

    def test_empty_cards(self):
        assert pick_top_k([], "anything") == []
