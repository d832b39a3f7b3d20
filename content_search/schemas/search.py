"""
Pydantic schemas for user-scoped content search.

These models mirror the arguments and the RETURNS TABLE shape of the
search_user_content Postgres function, plus the response envelope returned
by every search operation (success or failure).
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

# Content origin enum (matches content_embeddings.source_type CHECK constraint)
SourceType = Literal[
    "github",
    "rss",
    "news",
    "api",
    "webhook",
    "manual",
    "test",
    "unknown",
]


# --- Request models ---

class SearchUserContentParams(BaseModel):
    """
    Parameters of a raw vector search.

    Only target_user_id and query_vector are required; omitted fields take
    the defaults of the search function (threshold 0.7, 10 matches,
    active content only).

    Field constraints (1536 dimensions, threshold in [0, 1], match_count in
    [0, 1000], known source type) are checked by is_valid_search_params,
    so a request that breaks them gets an InvalidParameters envelope.
    """
    target_user_id: str = Field(..., description="User whose content is searched (must be the caller)")
    query_vector: List[float] = Field(..., description="1536-dimensional query embedding")
    search_similarity_threshold: Optional[float] = Field(
        None,
        description="Minimum similarity of returned content (default 0.7)"
    )
    match_count: Optional[int] = Field(None, description="Maximum number of results (default 10)")
    start_date: Optional[str] = Field(None, description="ISO-8601 lower bound on created_at")
    end_date: Optional[str] = Field(None, description="ISO-8601 upper bound on created_at")
    source_type_filter: Optional[str] = Field(None, description="Restrict to one content origin")
    active_only: Optional[bool] = Field(None, description="Exclude inactive content (default true)")


class SearchOptions(BaseModel):
    """Optional search parameters shared by the text-based searches."""
    search_similarity_threshold: Optional[float] = None
    match_count: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    source_type_filter: Optional[str] = None
    active_only: Optional[bool] = None


class TextSearchRequest(BaseModel):
    """Request for a free-text search."""
    target_user_id: str
    query: str = Field(..., examples=["rust async runtime"])
    options: Optional[SearchOptions] = None


class TopicsSearchRequest(BaseModel):
    """Request for a multi-topic search (one search per topic, run concurrently)."""
    target_user_id: str
    # Bounds the concurrent fan-out of one request
    topics: List[str] = Field(..., max_length=20, examples=[["rust", "golang"]])
    options: Optional[SearchOptions] = None


class DateRangeSearchRequest(BaseModel):
    """Request for a free-text search limited to a creation date range."""
    target_user_id: str
    query: str
    start_date: Union[datetime, str]
    end_date: Union[datetime, str]
    options: Optional[SearchOptions] = None


class SourceTypeSearchRequest(BaseModel):
    """Request for a free-text search limited to one content origin."""
    target_user_id: str
    query: str
    source_type: str = Field(..., examples=["github"])
    options: Optional[SearchOptions] = None


# --- Response models ---

class DateFilter(BaseModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class QueryInfo(BaseModel):
    """Query parameters echoed back by the search function for auditing."""
    query_timestamp: Optional[str] = None
    requested_threshold: Optional[float] = None
    requested_count: Optional[int] = None
    source_filter: Optional[str] = None
    date_filter: Optional[DateFilter] = None


class SearchResultMetadata(BaseModel):
    model_name: Optional[str] = None
    embedding_created_at: Optional[str] = None
    similarity_threshold: Optional[float] = None
    is_active: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None
    query_info: Optional[QueryInfo] = None


class SearchUserContentResult(BaseModel):
    """
    One matched content item, ordered by descending similarity.

    Rows are taken as the search function returns them: similarity and
    source_type are not re-checked, and nullable columns stay None.
    """
    id: str
    content_text: Optional[str] = None
    source_type: Optional[str] = None
    source_url: Optional[str] = None
    similarity: float
    metadata: Optional[SearchResultMetadata] = None
    created_at: Optional[str] = None


class SearchError(BaseModel):
    code: str = Field(..., examples=["AccessDenied"])
    message: str
    details: Optional[str] = None


class SearchUserContentResponse(BaseModel):
    """
    Envelope returned by every search operation.

    error is set if and only if the operation failed; in that case results
    is empty and total_count is 0.
    """
    results: List[SearchUserContentResult] = Field(default_factory=list)
    execution_time_ms: Optional[float] = Field(
        None,
        description="Wall-clock duration including authentication and the RPC round trip"
    )
    total_count: int = 0
    error: Optional[SearchError] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "results": [],
                    "execution_time_ms": 4.2,
                    "total_count": 0,
                    "error": {
                        "code": "AccessDenied",
                        "message": "Access denied: You can only search your own data"
                    }
                }
            ]
        }
    }


class SearchPerformanceStats(BaseModel):
    """Rolling statistics over the most recent searches."""
    average_execution_time: float
    max_execution_time: float
    min_execution_time: float
    total_searches: int
    success_rate: float
