"""
Health check route for the content search backend.

This endpoint is PUBLIC (no authentication required) and provides a simple
status check for load balancers, monitoring, and deployment verification.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from content_search import __version__
from content_search.config import settings
from content_search.schemas.health import DependencyStatus, HealthResponse
from content_search.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["system"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint",
    description=(
        "Public health check endpoint (no authentication required). "
        "Reports service version, environment and which dependencies are configured."
    ),
    status_code=200,
)
async def health_check() -> HealthResponse:
    """Public health check endpoint."""
    logger.debug("Health check endpoint called")

    supabase_ready = bool(settings.SUPABASE_URL and settings.SUPABASE_PUBLISHABLE_KEY)

    return HealthResponse(
        status="ok",
        version=__version__,
        environment=settings.ENVIRONMENT,
        timestamp=datetime.now(timezone.utc).isoformat(),
        dependencies=DependencyStatus(
            supabase="configured" if supabase_ready else "missing",
            embeddings="configured" if settings.GOOGLE_API_KEY else "missing",
        ),
    )
