"""
Deterministic generator for tests and offline development.

No network. Reads from the first selected card only:
- "last N ..." on a relation with created_at orders by it, newest first,
  with LIMIT min(1000, N)
- anything else selects with LIMIT 100
"""

import re
from typing import Optional, Sequence

from ..adapters.database_adapter import RelationCard
from ..errors import GeneratorContractError
from .base import Explanation, GeneratedSQL, SQLGenerator

_LAST_N = re.compile(r"last\s+(\d+)")


class MockGenerator(SQLGenerator):
    """Heuristic stand-in for an LLM."""

    name = "mock"

    def __init__(self, max_limit: int = 1000, default_limit: int = 100):
        self.max_limit = max_limit
        self.default_limit = default_limit

    def generate_sql(
        self,
        phrase: str,
        cards: Sequence[RelationCard],
        card_names: Sequence[str],
        param_style: Optional[str] = None,
    ) -> GeneratedSQL:
        if not cards:
            raise GeneratorContractError("No relations available")
        primary = cards[0]
        sql = f"SELECT * FROM {primary.name}"

        match = _LAST_N.search(phrase.lower())
        if match and any(c.name == "created_at" for c in primary.columns):
            n = min(self.max_limit, int(match.group(1)))
            sql += f" ORDER BY {primary.name}.created_at DESC LIMIT {n}"
        else:
            sql += f" LIMIT {self.default_limit}"
        return GeneratedSQL(sql=sql, params=[])

    def generate_explanation(
        self,
        phrase: str,
        cards: Sequence[RelationCard],
        card_names: Sequence[str],
    ) -> Explanation:
        if not cards:
            raise GeneratorContractError("No relations available")

        lines = []
        for card in cards:
            columns = ", ".join(c.name for c in card.columns) or "no columns"
            lines.append(f"{card.name} ({card.kind.value}): {columns}.")
            for hint in card.join_hints:
                lines.append(f"  joins via {hint}")
        return Explanation(answer="\n".join(lines), references=list(card_names))
