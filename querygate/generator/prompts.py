"""Prompt templates for the LLM-backed generator."""

import json
from typing import Sequence

from ..adapters.database_adapter import RelationCard
from ..guards.sql_guard import BANNED_KEYWORDS


SQL_SYSTEM_PROMPT = """You translate natural language into a single read-only SQL SELECT query for the connected database.

Rules:
- Use ONLY these relations (views/tables): {relations}
- Single statement. No semicolons.
- Absolutely forbid: {banned}.
- Never use ORDER BY random().
- Prefer join_hints exactly as provided.
- Always include a LIMIT <= {max_limit} unless a single row is explicitly requested.
- Use schema-qualified names.
- Pass literal values from the request as parameters using the {param_style} placeholder.
- Output strictly JSON: {{"sql": "...", "params": [...]}} with no extra text.

Context:
{{"relations": {cards}}}"""


EXPLAIN_SYSTEM_PROMPT = """You answer questions about the structure of a database.

Rules:
- Use ONLY these relations (views/tables): {relations}
- Describe columns, keys and how relations join, based on join_hints.
- Do not invent relations or columns that are not in the context.
- Output strictly JSON: {{"answer": "...", "references": ["schema.relation", ...]}} with no extra text.

Context:
{{"relations": {cards}}}"""


def _cards_json(cards: Sequence[RelationCard]) -> str:
    return json.dumps([card.to_dict() for card in cards])


def build_sql_prompt(
    cards: Sequence[RelationCard],
    card_names: Sequence[str],
    max_limit: int,
    param_style: str = "%s",
) -> str:
    return SQL_SYSTEM_PROMPT.format(
        relations=", ".join(card_names),
        banned=", ".join(BANNED_KEYWORDS),
        max_limit=max_limit,
        param_style=param_style,
        cards=_cards_json(cards),
    )


def build_explanation_prompt(cards: Sequence[RelationCard], card_names: Sequence[str]) -> str:
    return EXPLAIN_SYSTEM_PROMPT.format(
        relations=", ".join(card_names),
        cards=_cards_json(cards),
    )
