"""
Shared dependencies for the QueryGate API.

Provides:
- Structured logging for the whole querygate logger tree
- Access to the pipeline owned by the application
"""

import logging

from fastapi import Request

from configs import LOG_LEVEL
from ..orchestrator import QueryPipeline


# =============================================================================
# STRUCTURED LOGGING
# =============================================================================

def setup_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """Configure structured logging for QueryGate."""
    logger = logging.getLogger("querygate")

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    return logger


logger = setup_logging()


# =============================================================================
# PIPELINE
# =============================================================================

def get_pipeline(request: Request) -> QueryPipeline:
    """The pipeline created with the app; one registry and one card cache per process."""
    return request.app.state.pipeline
