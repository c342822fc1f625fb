"""
Relevance selection over relation cards.

Narrows the full schema to the K relations most lexically relevant to a
phrase. Pure and deterministic: identical input always yields identical
ordered output, which keeps generator prompts reproducible.
"""

import math
import re
from typing import List, Sequence

from ..adapters.database_adapter import RelationCard

DEFAULT_K = 6
NAME_BONUS = 0.5

_NON_TOKEN = re.compile(r"[^a-z0-9_\s.]")


def tokenize(phrase: str) -> List[str]:
    """Lower-case and split on anything that is not alphanumeric, '_' or '.'."""
    return _NON_TOKEN.sub(" ", phrase.lower()).split()


def _haystack(card: RelationCard) -> str:
    parts = [card.name, *(c.name for c in card.columns), *card.join_hints]
    return " ".join(parts).lower()


def score_card(card: RelationCard, tokens: Sequence[str]) -> float:
    """
    Lexical relevance of one card to the query tokens.

    Whole-word hits across name, columns and join hints count one each;
    a token inside the relation name adds a flat bonus; smaller relations
    get a slight edge when a row estimate is known.
    """
    hay = _haystack(card)
    name = card.name.lower()
    score = 0.0
    for token in tokens:
        pattern = re.compile(r"\b" + re.escape(token) + r"\b", re.ASCII)
        score += len(pattern.findall(hay))
        if token in name:
            score += NAME_BONUS
    if card.row_estimate is not None:
        score += 1 / math.log10(card.row_estimate + 10)
    return score


def pick_top_k(cards: Sequence[RelationCard], phrase: str, k: int = DEFAULT_K) -> List[RelationCard]:
    """
    Rank cards by relevance to the phrase and return the first k.

    Ties are broken by relation name so the order is total.
    """
    tokens = tokenize(phrase)
    ranked = sorted(cards, key=lambda card: (-score_card(card, tokens), card.name))
    return ranked[:max(1, k)]
