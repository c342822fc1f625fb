"""
Relation card aggregation.

Builds the full schema snapshot for one database: list relations, then
describe every relation and list every foreign key concurrently, then
attach one join hint per outbound edge.

A snapshot is all-or-nothing. If any describe call fails the whole build
fails, so a partially described schema never reaches the cache.
"""

import asyncio
import dataclasses
import logging
from collections import defaultdict
from typing import Dict, List, Sequence, Tuple

from ..adapters.database_adapter import (
    IntrospectionAdapter,
    RelationCard,
    Relationship,
    schema_of,
)

logger = logging.getLogger("querygate.schema.cards")


def attach_join_hints(
    cards: Sequence[RelationCard],
    relationships: Sequence[Relationship],
    system_schemas: Sequence[str] = (),
) -> List[RelationCard]:
    """Return new cards whose join_hints reflect each card's outbound edges."""
    excluded = {s.lower() for s in system_schemas}
    edges_by_source: Dict[str, List[Relationship]] = defaultdict(list)
    for edge in relationships:
        if schema_of(edge.from_relation).lower() in excluded:
            continue
        if schema_of(edge.to_relation).lower() in excluded:
            continue
        edges_by_source[edge.from_relation].append(edge)

    return [
        dataclasses.replace(
            card,
            join_hints=tuple(edge.join_hint() for edge in edges_by_source.get(card.name, ())),
        )
        for card in cards
    ]


async def build_cards(adapter: IntrospectionAdapter) -> Tuple[RelationCard, ...]:
    """
    Introspect the database behind an adapter into relation cards.

    Blocking adapter calls run on worker threads; the number actually
    hitting the database at once is bounded by the adapter's pool.

    Raises:
        QueryGateError: Any adapter failure, unchanged
    """
    relations = await asyncio.to_thread(adapter.list_relations)

    described, relationships = await asyncio.gather(
        asyncio.gather(*(asyncio.to_thread(adapter.describe_relation, r.name) for r in relations)),
        asyncio.to_thread(adapter.list_relationships),
    )

    cards = attach_join_hints(described, relationships, adapter.system_schemas)
    logger.info(
        "Introspected %d relation(s), %d foreign key edge(s)",
        len(cards),
        sum(len(c.join_hints) for c in cards),
    )
    return tuple(cards)
