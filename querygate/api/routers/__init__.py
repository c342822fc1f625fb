"""API routers."""

from .query import router as query_router
from .system import router as system_router

__all__ = ["query_router", "system_router"]
