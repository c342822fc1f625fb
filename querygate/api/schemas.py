"""
Pydantic schemas for the QueryGate API.

These models define the request/response structure for all API endpoints.
"""

from typing import Optional, List, Dict, Any
from pydantic import AliasChoices, BaseModel, Field

from configs import MAX_PHRASE_LENGTH


# ============================================================
# REQUEST MODELS
# ============================================================

class QueryRequest(BaseModel):
    """Request body for POST /query and POST /explain."""
    phrase: str = Field(
        ...,
        description="Natural language request",
        min_length=1,
        max_length=MAX_PHRASE_LENGTH,
    )
    db_url: Optional[str] = Field(
        None,
        description="Connection string; falls back to DATABASE_URL",
        validation_alias=AliasChoices("db_url", "dbUrl"),
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"phrase": "last 10 paid orders with emails"},
                {"phrase": "what links orders to customers?", "db_url": "postgresql://app_ro@localhost/demo"}
            ]
        }
    }


# ============================================================
# RESPONSE MODELS
# ============================================================

class QueryResponse(BaseModel):
    """Response body for POST /query. truncated is omitted unless True."""
    rows: List[Dict[str, Any]] = Field(default_factory=list, description="Result rows")
    row_count: int = Field(0, serialization_alias="rowCount", description="Rows returned")
    sql: str = Field(..., description="Statement actually executed")
    truncated: Optional[bool] = Field(None, description="Rows were dropped to fit the response budget")


class ExplainResponse(BaseModel):
    """Response body for POST /explain. references is omitted when empty."""
    answer: str
    references: Optional[List[str]] = None


class HealthResponse(BaseModel):
    """Response for GET /health."""
    status: str = "healthy"
    version: str = "1.0.0"
    generator: Optional[str] = None
    pools: int = 0
    cached_schemas: int = 0
    default_database_configured: bool = False


class ErrorResponse(BaseModel):
    """Body of every error response."""
    error: str
    category: str
