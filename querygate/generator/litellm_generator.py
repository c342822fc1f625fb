"""
LLM-backed generator.

Uses LiteLLM so any provider it understands (OpenAI, Gemini, Groq, ...)
can sit behind the same prompt. One call per request, no retries and no
provider fallback: a transport failure surfaces as
GeneratorUnavailableError, a malformed answer as GeneratorContractError.
"""

import logging
from typing import Optional, Sequence

from litellm import completion

from configs import MAX_LLM_TOKENS
from ..adapters.database_adapter import RelationCard
from ..errors import GeneratorContractError, GeneratorUnavailableError
from .base import Explanation, GeneratedSQL, SQLGenerator
from .contract import parse_explanation_response, parse_sql_response
from .prompts import build_explanation_prompt, build_sql_prompt

logger = logging.getLogger("querygate.generator")


class LiteLLMGenerator(SQLGenerator):
    """
    Generator that asks a chat model for a JSON response.

    Example:
        generator = LiteLLMGenerator(model="gpt-4o-mini", max_limit=1000)
        generated = generator.generate_sql("last 10 paid orders", cards, names)
    """

    name = "litellm"

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        param_style: str = "%s",
        max_limit: int = 1000,
        max_tokens: int = MAX_LLM_TOKENS,
    ):
        if not model:
            raise ValueError("A model name is required for LiteLLMGenerator")
        self.model = model
        self.api_key = api_key
        self.param_style = param_style
        self.max_limit = max_limit
        self.max_tokens = max_tokens
        self.call_count = 0

    def _complete(self, system_prompt: str, phrase: str) -> str:
        kwargs = {}
        if self.api_key:
            kwargs["api_key"] = self.api_key

        logger.debug("Calling %s (call #%d)", self.model, self.call_count + 1)
        try:
            # drop_params lets models that reject temperature run at their default
            response = completion(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": phrase},
                ],
                temperature=0,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
                drop_params=True,
                **kwargs,
            )
        except Exception as e:
            logger.error("Generator call to %s failed: %s", self.model, e)
            raise GeneratorUnavailableError(f"Generator unavailable: {type(e).__name__}")

        self.call_count += 1
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError):
            raise GeneratorContractError("Generator returned no choices")
        return content

    def generate_sql(
        self,
        phrase: str,
        cards: Sequence[RelationCard],
        card_names: Sequence[str],
        param_style: Optional[str] = None,
    ) -> GeneratedSQL:
        prompt = build_sql_prompt(cards, card_names, self.max_limit, param_style or self.param_style)
        return parse_sql_response(self._complete(prompt, phrase))

    def generate_explanation(
        self,
        phrase: str,
        cards: Sequence[RelationCard],
        card_names: Sequence[str],
    ) -> Explanation:
        prompt = build_explanation_prompt(cards, card_names)
        return parse_explanation_response(self._complete(prompt, phrase))
