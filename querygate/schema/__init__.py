"""Schema snapshot building, caching and relevance selection."""

from .cards import build_cards, attach_join_hints
from .card_cache import RelationCardCache, CacheEntry
from .relevance import pick_top_k, tokenize, score_card

__all__ = [
    "build_cards",
    "attach_join_hints",
    "RelationCardCache",
    "CacheEntry",
    "pick_top_k",
    "tokenize",
    "score_card",
]
