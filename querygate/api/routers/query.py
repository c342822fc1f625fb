"""
Query router - phrase to rows, and phrase to schema explanation.

Endpoints:
- POST /query   - Generate, guard and execute a SELECT
- POST /explain - Explain the relevant part of the schema
"""

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ...orchestrator import QueryPipeline
from ..deps import get_pipeline
from ..schemas import ErrorResponse, ExplainResponse, QueryRequest, QueryResponse


router = APIRouter(tags=["Query"])

BINARY_ENCODERS = {
    bytes: bytes.hex,
    bytearray: bytearray.hex,
    memoryview: memoryview.hex,
}

_ERRORS = {
    400: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


@router.post("/query", response_model=QueryResponse, responses=_ERRORS)
async def execute_query(request: QueryRequest, pipeline: QueryPipeline = Depends(get_pipeline)):
    """
    Answer a phrase with rows from the target database.

    The statement the model produced is guarded before execution; the SQL
    actually run (with any appended LIMIT) is echoed back.
    """
    result = await pipeline.run_query(request.phrase, request.db_url)

    body = QueryResponse(
        rows=result.rows,
        row_count=result.row_count,
        sql=result.sql,
        truncated=True if result.truncated else None,
    ).model_dump(by_alias=True)
    if body["truncated"] is None:
        body.pop("truncated")
    # row values may be dates, decimals or binary (psycopg2 returns bytea as memoryview)
    return JSONResponse(content=jsonable_encoder(body, custom_encoder=BINARY_ENCODERS))


@router.post("/explain", response_model=ExplainResponse, response_model_exclude_none=True, responses=_ERRORS)
async def explain(request: QueryRequest, pipeline: QueryPipeline = Depends(get_pipeline)):
    """Describe the relations relevant to the phrase. Nothing is executed."""
    explanation = await pipeline.explain(request.phrase, request.db_url)

    body = {"answer": explanation.answer}
    if explanation.references:
        body["references"] = list(explanation.references)
    return body
