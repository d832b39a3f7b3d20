"""
Content source CRUD API endpoints.

Manages the authenticated user's content sources through the user data gate
(content_search.db.user_data), which checks the session identity before
every store call.
"""

import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Path, status

from content_search.auth.dependencies import AuthenticatedUser, get_authenticated_user
from content_search.auth.session import SupabaseSessionProvider
from content_search.db.client import get_supabase_client
from content_search.db.user_data import (
    create_user_data,
    delete_user_data,
    get_user_data,
    update_user_data,
)
from content_search.schemas.content_sources import (
    ContentSourceCreateRequest,
    ContentSourceDeleteResponse,
    ContentSourceListResponse,
    ContentSourceResponse,
    ContentSourceUpdateRequest,
)
from content_search.utils.errors import ContentSearchError, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content-sources", tags=["content-sources"])

TABLE = "content_sources"


def _not_found(source_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": "not_found", "details": f"Content source {source_id} not found"}
    )


def _to_response(row: Dict[str, Any]) -> ContentSourceResponse:
    return ContentSourceResponse.model_validate(row)


@router.get(
    "",
    response_model=ContentSourceListResponse,
    status_code=status.HTTP_200_OK,
    summary="List content sources",
    description="""
    Retrieve the authenticated user's content sources.

    Security:
    - Requires valid Authorization Bearer token
    - Only the user's own sources are returned (explicit filter + RLS)
    """
)
async def list_content_sources(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    active_only: bool = False,
) -> ContentSourceListResponse:
    supabase_client = get_supabase_client(auth_user.access_token)
    filters = {"is_active": True} if active_only else {}

    try:
        rows = await get_user_data(
            supabase_client,
            SupabaseSessionProvider(supabase_client),
            TABLE,
            auth_user.user_id,
            filters,
        )
    except ContentSearchError as e:
        logger.error(f"Failed to list content sources for user {auth_user.user_id}: {e.message}")
        raise to_http_exception(e)

    sources = [_to_response(row) for row in rows]
    return ContentSourceListResponse(sources=sources, count=len(sources))


@router.post(
    "",
    response_model=ContentSourceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create content source",
)
async def create_content_source(
    request: ContentSourceCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ContentSourceResponse:
    logger.info(f"Creating {request.source_type} content source for user {auth_user.user_id}")

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        created = await create_user_data(
            supabase_client,
            SupabaseSessionProvider(supabase_client),
            TABLE,
            auth_user.user_id,
            request.model_dump(),
        )
    except ContentSearchError as e:
        logger.error(f"Failed to create content source for user {auth_user.user_id}: {e.message}")
        raise to_http_exception(e)

    return _to_response(created)


@router.patch(
    "/{source_id}",
    response_model=ContentSourceResponse,
    status_code=status.HTTP_200_OK,
    summary="Update content source",
)
async def update_content_source(
    request: ContentSourceUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    source_id: str = Path(..., description="Content source UUID"),
) -> ContentSourceResponse:
    updates = request.model_dump(exclude_unset=True)
    logger.info(f"Updating content source {source_id} for user {auth_user.user_id}: {list(updates.keys())}")

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        updated = await update_user_data(
            supabase_client,
            SupabaseSessionProvider(supabase_client),
            TABLE,
            auth_user.user_id,
            source_id,
            updates,
        )
    except ContentSearchError as e:
        logger.error(f"Failed to update content source {source_id}: {e.message}")
        raise to_http_exception(e)

    if updated is None:
        raise _not_found(source_id)

    return _to_response(updated)


@router.delete(
    "/{source_id}",
    response_model=ContentSourceDeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete content source",
)
async def delete_content_source(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    source_id: str = Path(..., description="Content source UUID"),
) -> ContentSourceDeleteResponse:
    logger.info(f"Deleting content source {source_id} for user {auth_user.user_id}")

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        deleted = await delete_user_data(
            supabase_client,
            SupabaseSessionProvider(supabase_client),
            TABLE,
            auth_user.user_id,
            source_id,
        )
    except ContentSearchError as e:
        logger.error(f"Failed to delete content source {source_id}: {e.message}")
        raise to_http_exception(e)

    if not deleted:
        raise _not_found(source_id)

    return ContentSourceDeleteResponse(source_id=source_id)
