"""Config module initialization."""
from .settings import (
    # Database
    DATABASE_URL,
    CACHE_POOL_SIZE,
    POOL_MAX,
    # Schema cache & retrieval
    CARDS_TTL_SECONDS,
    DEFAULT_TOP_K,
    # Execution limits
    STATEMENT_TIMEOUT_MS,
    MAX_LIMIT,
    MAX_RESPONSE_BYTES,
    MAX_PHRASE_LENGTH,
    # Generator
    LLM_MODEL,
    MAX_LLM_TOKENS,
    LLM_API_KEY,
    MOCK_LLM,
    # System
    LOG_LEVEL,
    ALLOWED_ORIGINS,
    PORT,
    # Validation
    ConfigurationError,
    validate_configuration,
)

__all__ = [
    "DATABASE_URL",
    "CACHE_POOL_SIZE",
    "POOL_MAX",
    "CARDS_TTL_SECONDS",
    "DEFAULT_TOP_K",
    "STATEMENT_TIMEOUT_MS",
    "MAX_LIMIT",
    "MAX_RESPONSE_BYTES",
    "MAX_PHRASE_LENGTH",
    "LLM_MODEL",
    "MAX_LLM_TOKENS",
    "LLM_API_KEY",
    "MOCK_LLM",
    "LOG_LEVEL",
    "ALLOWED_ORIGINS",
    "PORT",
    "ConfigurationError",
    "validate_configuration",
]
