"""
Generator contract.

A generator turns a phrase plus a handful of relation cards into either a
candidate SELECT or a prose explanation. Its output is untrusted: every
statement still goes through the guard before execution.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from ..adapters.database_adapter import RelationCard


@dataclass
class GeneratedSQL:
    """Candidate statement with positional parameters."""
    sql: str
    params: List[Any] = field(default_factory=list)


@dataclass
class Explanation:
    """Prose answer about the schema and the relations it cites."""
    answer: str
    references: List[str] = field(default_factory=list)


class SQLGenerator(ABC):
    """Abstract base class for phrase-to-SQL generators."""

    name = "generator"

    @abstractmethod
    def generate_sql(
        self,
        phrase: str,
        cards: Sequence[RelationCard],
        card_names: Sequence[str],
        param_style: Optional[str] = None,
    ) -> GeneratedSQL:
        """
        Produce one candidate SELECT for the phrase.

        Args:
            phrase: Natural-language request
            cards: The selected relation cards (the only relations allowed)
            card_names: Their qualified names, in selection order
            param_style: Placeholder style of the target backend (%s or ?)

        Raises:
            GeneratorContractError: Response was malformed
            GeneratorUnavailableError: Generator could not be reached
        """
        pass

    @abstractmethod
    def generate_explanation(
        self,
        phrase: str,
        cards: Sequence[RelationCard],
        card_names: Sequence[str],
    ) -> Explanation:
        """Answer a question about the schema using only the selected cards."""
        pass
