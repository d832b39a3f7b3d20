"""
FastAPI application entry point for the content search backend.

This module creates the FastAPI app instance and registers all routers.
"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from content_search import __version__
from content_search.config import settings
from content_search.routes.auth import router as auth_router
from content_search.routes.content_sources import router as content_sources_router
from content_search.routes.health import router as health_router
from content_search.routes.search import router as search_router
from content_search.routes.users import router as users_router

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


def _get_cors_origins() -> list[str]:
    """
    Get allowed CORS origins based on environment.

    - ENVIRONMENT=production: Uses CORS_ORIGINS (explicit list, may be empty)
    - Otherwise: Allows all origins for local development

    Returns:
        List of allowed origin URLs, or ["*"] for development.
    """
    if settings.is_production():
        origins = [origin.strip() for origin in settings.CORS_ORIGINS if origin.strip()]
        if origins:
            logger.info(f"CORS configured for production with {len(origins)} allowed origins")
        else:
            logger.warning(
                "CORS_ORIGINS not set in production. "
                "No web origins allowed."
            )
        return origins

    logger.info(f"CORS configured for {settings.ENVIRONMENT}: allowing all origins")
    return ["*"]


# Create FastAPI app
app = FastAPI(
    title="Content Search API",
    description="User-scoped semantic search over personal content",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Log validation errors for debugging.

    The request body is not logged: it may carry query vectors or user text.
    """
    logger.error(
        f"Validation error on {request.method} {request.url.path}: "
        f"{[error.get('loc') for error in exc.errors()]}"
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "details": [
                {"loc": error.get("loc"), "msg": error.get("msg"), "type": error.get("type")}
                for error in exc.errors()
            ]
        }
    )

# Configure CORS with environment-based origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(search_router)
app.include_router(content_sources_router)
app.include_router(users_router)

logger.info("FastAPI app initialized successfully")
