"""
System router - health checks.

Endpoints:
- GET /health  - Status plus registry and cache occupancy
- GET /healthz - Liveness probe
"""

from fastapi import APIRouter, Depends

from ... import __version__
from ...orchestrator import QueryPipeline
from ..deps import get_pipeline
from ..schemas import HealthResponse


router = APIRouter(tags=["System"])


@router.get("/health", response_model=HealthResponse)
async def health_check(pipeline: QueryPipeline = Depends(get_pipeline)):
    """Check API health. Never touches a database."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        generator=pipeline.generator.name,
        pools=len(pipeline.registry),
        cached_schemas=len(pipeline.card_cache),
        default_database_configured=bool(pipeline.default_connection_string),
    )


@router.get("/healthz")
async def healthz():
    return {"ok": True}
