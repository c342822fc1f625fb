"""
QueryGate FastAPI Application.

REST layer over the query pipeline. No SQL or LLM logic lives here: routes
hand the request to the pipeline and every QueryGateError is rendered as
{"error": ..., "category": ...} with the status its category maps to.

Endpoints:
- POST /query   - Phrase to rows
- POST /explain - Phrase to schema explanation
- GET /health   - Health check
- GET /healthz  - Liveness probe
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from configs import ALLOWED_ORIGINS, PORT
from .. import __version__
from ..errors import QueryGateError
from ..orchestrator import QueryPipeline, build_pipeline
from .deps import logger
from .routers import query_router, system_router


# ============================================================
# APP FACTORY
# ============================================================

def create_app(pipeline: Optional[QueryPipeline] = None) -> FastAPI:
    """
    Build the application around a pipeline.

    The pipeline (and with it the pool registry) lives as long as the app;
    every pool is closed on shutdown.
    """
    pipeline = pipeline or build_pipeline()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("QueryGate API started (generator: %s)", pipeline.generator.name)
        yield
        logger.info("QueryGate API shutting down; closing %d pool(s)", len(pipeline.registry))
        pipeline.registry.close_all()

    app = FastAPI(
        title="QueryGate API",
        description="Natural language to guarded, read-only SQL",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS if ALLOWED_ORIGINS != ["*"] else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(QueryGateError)
    async def querygate_error_handler(request: Request, exc: QueryGateError):
        if exc.status_code >= 500:
            logger.error("%s %s failed [%s]: %s", request.method, request.url.path, exc.category, exc.message)
        else:
            logger.warning("%s %s rejected [%s]: %s", request.method, request.url.path, exc.category, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(query_router)
    app.include_router(system_router)
    return app


app = create_app()


# ============================================================
# RUN DIRECTLY (for development)
# ============================================================

def run() -> None:
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    run()
