"""
Content search API endpoints.

Every search endpoint returns a SearchUserContentResponse with status 200,
including failed searches: the envelope's error field carries the failure
so clients can render "no results" plus a message. Parameter ranges
(vector length, threshold, match_count, source type) are checked by the
search service and reported as InvalidParameters envelopes; only bodies
of the wrong JSON shape are rejected with 422.
"""

import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from content_search.auth.dependencies import AuthenticatedUser, get_authenticated_user
from content_search.auth.session import SupabaseSessionProvider
from content_search.db.client import get_supabase_client
from content_search.schemas.search import (
    DateRangeSearchRequest,
    SearchPerformanceStats,
    SearchUserContentParams,
    SearchUserContentResponse,
    SourceTypeSearchRequest,
    TextSearchRequest,
    TopicsSearchRequest,
)
from content_search.services.search_service import (
    search_performance,
    search_user_content,
    search_user_content_broad,
    search_user_content_by_date_range,
    search_user_content_by_source_type,
    search_user_content_by_text,
    search_user_content_by_topics,
    search_user_content_high_precision,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


def _record(response: SearchUserContentResponse) -> SearchUserContentResponse:
    search_performance.record_response(response)
    return response


@router.post(
    "",
    response_model=SearchUserContentResponse,
    status_code=status.HTTP_200_OK,
    summary="Vector search over the user's content",
    description="""
    Similarity search with a caller-supplied 1536-dimensional query vector.

    Security:
    - Requires valid Authorization Bearer token
    - target_user_id must be the authenticated user (AccessDenied otherwise)
    - RLS restricts the search to the user's own embeddings
    """
)
async def vector_search(
    request: SearchUserContentParams,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> SearchUserContentResponse:
    logger.info(f"Vector search requested by user {auth_user.user_id}")

    supabase_client = get_supabase_client(auth_user.access_token)
    response = await search_user_content(
        supabase_client=supabase_client,
        session_provider=SupabaseSessionProvider(supabase_client),
        params=request,
    )
    return _record(response)


@router.post(
    "/text",
    response_model=SearchUserContentResponse,
    status_code=status.HTTP_200_OK,
    summary="Free-text search over the user's content",
)
async def text_search(
    request: TextSearchRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> SearchUserContentResponse:
    logger.info(f"Text search requested by user {auth_user.user_id}")

    supabase_client = get_supabase_client(auth_user.access_token)
    response = await search_user_content_by_text(
        supabase_client=supabase_client,
        session_provider=SupabaseSessionProvider(supabase_client),
        user_id=request.target_user_id,
        search_text=request.query,
        options=request.options,
    )
    return _record(response)


@router.post(
    "/topics",
    response_model=List[SearchUserContentResponse],
    status_code=status.HTTP_200_OK,
    summary="Search several topics at once",
    description="Runs one text search per topic concurrently. Responses are in topic order.",
)
async def topics_search(
    request: TopicsSearchRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> List[SearchUserContentResponse]:
    logger.info(f"Multi-topic search ({len(request.topics)} topics) requested by user {auth_user.user_id}")

    supabase_client = get_supabase_client(auth_user.access_token)
    responses = await search_user_content_by_topics(
        supabase_client=supabase_client,
        session_provider=SupabaseSessionProvider(supabase_client),
        user_id=request.target_user_id,
        topics=request.topics,
        options=request.options,
    )
    return [_record(response) for response in responses]


@router.post(
    "/date-range",
    response_model=SearchUserContentResponse,
    status_code=status.HTTP_200_OK,
    summary="Free-text search within a creation date range",
)
async def date_range_search(
    request: DateRangeSearchRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> SearchUserContentResponse:
    logger.info(f"Date range search requested by user {auth_user.user_id}")

    supabase_client = get_supabase_client(auth_user.access_token)
    response = await search_user_content_by_date_range(
        supabase_client=supabase_client,
        session_provider=SupabaseSessionProvider(supabase_client),
        user_id=request.target_user_id,
        search_text=request.query,
        start_date=request.start_date,
        end_date=request.end_date,
        options=request.options,
    )
    return _record(response)


@router.post(
    "/source-type",
    response_model=SearchUserContentResponse,
    status_code=status.HTTP_200_OK,
    summary="Free-text search within one content origin",
)
async def source_type_search(
    request: SourceTypeSearchRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> SearchUserContentResponse:
    logger.info(f"Source type search ({request.source_type}) requested by user {auth_user.user_id}")

    supabase_client = get_supabase_client(auth_user.access_token)
    response = await search_user_content_by_source_type(
        supabase_client=supabase_client,
        session_provider=SupabaseSessionProvider(supabase_client),
        user_id=request.target_user_id,
        search_text=request.query,
        source_type=request.source_type,
        options=request.options,
    )
    return _record(response)


@router.post(
    "/high-precision",
    response_model=SearchUserContentResponse,
    status_code=status.HTTP_200_OK,
    summary="Free-text search with a high similarity threshold (0.85)",
)
async def high_precision_search(
    request: TextSearchRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> SearchUserContentResponse:
    supabase_client = get_supabase_client(auth_user.access_token)
    response = await search_user_content_high_precision(
        supabase_client=supabase_client,
        session_provider=SupabaseSessionProvider(supabase_client),
        user_id=request.target_user_id,
        search_text=request.query,
        options=request.options,
    )
    return _record(response)


@router.post(
    "/broad",
    response_model=SearchUserContentResponse,
    status_code=status.HTTP_200_OK,
    summary="Free-text search with a low similarity threshold (0.5)",
)
async def broad_search(
    request: TextSearchRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> SearchUserContentResponse:
    supabase_client = get_supabase_client(auth_user.access_token)
    response = await search_user_content_broad(
        supabase_client=supabase_client,
        session_provider=SupabaseSessionProvider(supabase_client),
        user_id=request.target_user_id,
        search_text=request.query,
        options=request.options,
    )
    return _record(response)


@router.get(
    "/stats",
    response_model=SearchPerformanceStats,
    status_code=status.HTTP_200_OK,
    summary="Recent search performance",
    description="Average/max/min execution time and success rate over the last 100 searches.",
)
async def search_stats(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> SearchPerformanceStats:
    return search_performance.stats()
