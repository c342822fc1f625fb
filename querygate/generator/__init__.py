"""
Generator module for QueryGate.

Turns a phrase plus selected relation cards into a candidate SELECT or a
schema explanation. Output is always re-checked by the SQL guard.
"""

import logging
from typing import Optional

from configs import LLM_API_KEY, LLM_MODEL, MAX_LIMIT, MOCK_LLM, ConfigurationError
from .base import SQLGenerator, GeneratedSQL, Explanation
from .contract import parse_sql_response, parse_explanation_response
from .litellm_generator import LiteLLMGenerator
from .mock_generator import MockGenerator

logger = logging.getLogger("querygate.generator")


def get_generator(
    mock: Optional[bool] = None,
    model: Optional[str] = None,
    max_limit: int = MAX_LIMIT,
) -> SQLGenerator:
    """
    Build the configured generator.

    MockGenerator when MOCK_LLM is set (or mock=True), else LiteLLMGenerator
    for LLM_MODEL.

    Raises:
        ConfigurationError: No mock and no model configured
    """
    use_mock = MOCK_LLM if mock is None else mock
    if use_mock:
        logger.info("Using mock generator")
        return MockGenerator(max_limit=max_limit)

    model = model or LLM_MODEL
    if not model:
        raise ConfigurationError("LLM_MODEL is not set and MOCK_LLM is off")
    logger.info("Using LiteLLM generator (%s)", model)
    return LiteLLMGenerator(model=model, api_key=LLM_API_KEY, max_limit=max_limit)


__all__ = [
    "SQLGenerator",
    "GeneratedSQL",
    "Explanation",
    "LiteLLMGenerator",
    "MockGenerator",
    "parse_sql_response",
    "parse_explanation_response",
    "get_generator",
]
