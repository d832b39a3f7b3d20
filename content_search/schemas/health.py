"""
Health check endpoint schemas.

The health endpoint is PUBLIC (no authentication required).
"""

from typing import Literal

from pydantic import BaseModel, Field


class DependencyStatus(BaseModel):
    """Whether each external collaborator is configured (not contacted)."""
    supabase: Literal["configured", "missing"]
    embeddings: Literal["configured", "missing"]


class HealthResponse(BaseModel):
    """
    Response model for GET /health endpoint.

    Used by load balancers, monitoring systems, and deployment checks.
    """

    status: str = Field(
        default="ok",
        description="Health status of the API (always 'ok' if responding)",
        examples=["ok"]
    )
    service: str = Field(default="content-search-backend")
    version: str
    environment: str
    timestamp: str = Field(..., description="ISO-8601 UTC time of the check")
    dependencies: DependencyStatus
