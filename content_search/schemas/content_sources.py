"""
Pydantic schemas for content source endpoints.

A content source is a user-owned origin of content (GitHub account, RSS
feed, ...) whose items end up in content_embeddings.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

# Content source type enum (matches content_sources.source_type CHECK constraint)
ContentSourceType = Literal["github", "rss", "news", "api", "webhook"]


class ContentSourceResponse(BaseModel):
    id: str = Field(..., description="Content source UUID")
    user_id: str = Field(..., description="Owner user UUID")
    source_type: ContentSourceType
    name: str
    url: str
    config: Dict[str, Any] = Field(default_factory=dict)
    last_fetched_at: Optional[str] = None
    fetch_count: int = 0
    error_count: int = 0
    last_error: Optional[str] = None
    is_active: bool = True
    created_at: str
    updated_at: str


class ContentSourceListResponse(BaseModel):
    sources: List[ContentSourceResponse]
    count: int


class ContentSourceCreateRequest(BaseModel):
    """Request to register a new content source for the authenticated user."""
    source_type: ContentSourceType = Field(..., examples=["github", "rss"])
    name: str = Field(..., min_length=1, max_length=200, examples=["My GitHub"])
    url: str = Field(..., min_length=1, max_length=2000, examples=["https://github.com/octocat"])
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Source-specific settings (e.g. repositories, fetch_frequency)"
    )
    is_active: bool = True


class ContentSourceUpdateRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    url: Optional[str] = Field(None, min_length=1, max_length=2000)
    config: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


class ContentSourceDeleteResponse(BaseModel):
    status: Literal["DELETED"] = "DELETED"
    source_id: str
    message: str = "Content source deleted successfully"
