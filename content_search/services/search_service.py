"""
User content search service.

Wraps the search_user_content Postgres function (pgvector similarity search
scoped to one user) and the convenience searches built on it.

Flow of search_user_content():
1. Validate parameters (no network call on failure)
2. Resolve the session identity and require it to match target_user_id
3. Call the search_user_content RPC
4. Wrap results, count and execution time in a SearchUserContentResponse

Every public search returns an envelope. Failures are reported through
response.error (with empty results), never raised to the caller.
"""

import asyncio
import logging
import time
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Mapping, Optional, Sequence, Tuple, Union, cast

from postgrest.exceptions import APIError
from supabase import Client

from content_search.auth.session import SessionProvider, authorize_and_identify, validate_user_access
from content_search.config import settings
from content_search.schemas.search import (
    SearchError,
    SearchOptions,
    SearchPerformanceStats,
    SearchUserContentParams,
    SearchUserContentResponse,
    SearchUserContentResult,
    SourceType,
)
from content_search.services.embedding_service import generate_text_embedding
from content_search.services.search_params import (
    format_timestamp_for_postgres,
    is_valid_search_params,
    params_to_dict,
)
from content_search.utils.constants import (
    BROAD_THRESHOLD,
    HIGH_PRECISION_THRESHOLD,
    PERFORMANCE_HISTORY_SIZE,
    SEARCH_USER_CONTENT_CONSTRAINTS,
    SEARCH_USER_CONTENT_RPC,
)
from content_search.utils.errors import ContentSearchError, InvalidParametersError, UserDataError

logger = logging.getLogger(__name__)

SearchParamsInput = Union[SearchUserContentParams, Mapping[str, Any]]
SearchOptionsInput = Union[SearchOptions, Mapping[str, Any], None]


def _elapsed_ms(start_time: float) -> float:
    return (time.perf_counter() - start_time) * 1000


def _error_response(
    code: str,
    message: str,
    execution_time_ms: Optional[float] = None,
    details: Optional[str] = None,
) -> SearchUserContentResponse:
    return SearchUserContentResponse(
        results=[],
        execution_time_ms=execution_time_ms,
        total_count=0,
        error=SearchError(code=code, message=message, details=details),
    )


def _api_error_details(error: APIError) -> Optional[str]:
    parts = [str(part) for part in (error.details, error.hint) if part]
    return " ".join(parts) if parts else None


def _options_to_dict(options: SearchOptionsInput) -> Dict[str, Any]:
    if options is None:
        return {}
    opts = params_to_dict(options)
    # Identity and vector always come from the caller's explicit arguments
    opts.pop("target_user_id", None)
    opts.pop("query_vector", None)
    return opts


def _build_rpc_params(p: Mapping[str, Any]) -> Dict[str, Any]:
    threshold = p.get("search_similarity_threshold")
    match_count = p.get("match_count")
    active_only = p.get("active_only")

    return {
        "target_user_id": p["target_user_id"],
        "query_vector": list(p["query_vector"]),
        "search_similarity_threshold": (
            threshold if threshold is not None
            else SEARCH_USER_CONTENT_CONSTRAINTS['SIMILARITY_THRESHOLD']['DEFAULT']
        ),
        "match_count": (
            match_count if match_count is not None
            else SEARCH_USER_CONTENT_CONSTRAINTS['MATCH_COUNT']['DEFAULT']
        ),
        "start_date": p.get("start_date"),
        "end_date": p.get("end_date"),
        "source_type_filter": p.get("source_type_filter"),
        "active_only": active_only if active_only is not None else True,
    }


async def search_user_content(
    supabase_client: Client,
    session_provider: SessionProvider,
    params: SearchParamsInput,
) -> SearchUserContentResponse:
    """
    Run a vector similarity search over the caller's own content.

    Args:
        supabase_client: Authenticated Supabase client
        session_provider: Source of the caller's identity (looked up per call)
        params: SearchUserContentParams or an equivalent mapping

    Returns:
        SearchUserContentResponse. On failure, error.code is one of
        InvalidParameters, Unauthenticated, AccessDenied, DatabaseError,
        UnknownError; results is empty and total_count is 0.

    Security:
        - target_user_id must equal the session user (AccessDenied otherwise)
        - The RPC runs under the user's token, so RLS applies as well
    """
    start_time = time.perf_counter()

    try:
        if not is_valid_search_params(params):
            raise InvalidParametersError("Invalid search parameters provided", operation="search")

        p = params_to_dict(params)

        context = await authorize_and_identify(session_provider)
        validate_user_access(context.session_user_id, p["target_user_id"], "search")

        rpc_params = _build_rpc_params(p)
        logger.debug(
            f"Calling {SEARCH_USER_CONTENT_RPC} for user {context.session_user_id} "
            f"(threshold={rpc_params['search_similarity_threshold']}, "
            f"match_count={rpc_params['match_count']}, "
            f"source_type_filter={rpc_params['source_type_filter']})"
        )

        try:
            result = await asyncio.to_thread(
                lambda: supabase_client.rpc(SEARCH_USER_CONTENT_RPC, rpc_params).execute()
            )
        except APIError as e:
            raise UserDataError(
                f"Database query failed: {e.message}",
                user_id=context.session_user_id,
                operation="search",
                cause=e,
            ) from e

        rows = cast(List[Dict[str, Any]], result.data or [])
        results = [SearchUserContentResult.model_validate(row) for row in rows]

        execution_time = _elapsed_ms(start_time)
        if execution_time > settings.SEARCH_WARNING_THRESHOLD_MS:
            logger.warning(
                f"{SEARCH_USER_CONTENT_RPC} performance warning: Query took {execution_time:.2f}ms "
                f"(> {settings.SEARCH_WARNING_THRESHOLD_MS}ms)"
            )

        logger.info(
            f"Search for user {context.session_user_id} returned {len(results)} results "
            f"in {execution_time:.2f}ms"
        )

        return SearchUserContentResponse(
            results=results,
            execution_time_ms=execution_time,
            total_count=len(results),
        )

    except ContentSearchError as e:
        execution_time = _elapsed_ms(start_time)
        details = _api_error_details(e.cause) if isinstance(e.cause, APIError) else None
        logger.error(
            f"{SEARCH_USER_CONTENT_RPC} error: code={e.code}, message={e.message}, "
            f"execution_time={execution_time:.2f}ms"
        )
        return _error_response(e.code, e.message, execution_time, details)

    except Exception as e:
        execution_time = _elapsed_ms(start_time)
        logger.error(f"{SEARCH_USER_CONTENT_RPC} unexpected error: {e}", exc_info=True)
        return _error_response(
            "UnknownError",
            str(e) or "An unknown error occurred",
            execution_time,
            type(e).__name__,
        )


async def search_user_content_by_text(
    supabase_client: Client,
    session_provider: SessionProvider,
    user_id: str,
    search_text: str,
    options: SearchOptionsInput = None,
) -> SearchUserContentResponse:
    """
    Embed free text and search the user's content with it.

    If the embedding cannot be generated, returns a TextSearchError envelope
    without calling the search.
    """
    start_time = time.perf_counter()

    try:
        query_vector = await generate_text_embedding(search_text)
    except Exception as e:
        message = e.message if isinstance(e, ContentSearchError) else str(e)
        logger.error(f"Text search failed for user {user_id}: {message}")
        return _error_response(
            "TextSearchError",
            message or "Text search failed",
            _elapsed_ms(start_time),
        )

    params = {
        **_options_to_dict(options),
        "target_user_id": user_id,
        "query_vector": query_vector,
    }
    return await search_user_content(supabase_client, session_provider, params)


async def search_user_content_by_topics(
    supabase_client: Client,
    session_provider: SessionProvider,
    user_id: str,
    topics: Sequence[str],
    options: SearchOptionsInput = None,
) -> List[SearchUserContentResponse]:
    """
    Run one text search per topic, concurrently.

    Returns one envelope per topic, in input order. A failed topic reports
    its own error and does not affect the others. A topics value that is
    not a sequence of strings yields a single InvalidParameters envelope.
    """
    if topics is None:
        return []
    if isinstance(topics, str) or not isinstance(topics, Sequence):
        logger.error(f"Multi-topic search for user {user_id}: topics is not a list")
        return [_error_response("InvalidParameters", "Topics must be a list of strings")]

    topic_list = list(topics)

    try:
        responses = await asyncio.gather(*(
            search_user_content_by_text(supabase_client, session_provider, user_id, topic, options)
            for topic in topic_list
        ))
        return list(responses)
    except Exception as e:
        logger.error(f"Multi-topic search error for user {user_id}: {e}", exc_info=True)
        return [
            _error_response("MultiTopicSearchError", "Failed to search multiple topics")
            for _ in topic_list
        ]


async def search_user_content_by_date_range(
    supabase_client: Client,
    session_provider: SessionProvider,
    user_id: str,
    search_text: str,
    start_date: Union[datetime, str],
    end_date: Union[datetime, str],
    options: SearchOptionsInput = None,
) -> SearchUserContentResponse:
    """
    Text search restricted to content created between start_date and end_date.

    Dates may be datetimes or ISO-8601 strings; anything else yields an
    InvalidParameters envelope.
    """
    start_time = time.perf_counter()

    try:
        opts = _options_to_dict(options)
        opts["start_date"] = format_timestamp_for_postgres(start_date)
        opts["end_date"] = format_timestamp_for_postgres(end_date)
    except (ValueError, TypeError, AttributeError) as e:
        logger.error(f"Date range search for user {user_id} has invalid dates: {e}")
        return _error_response(
            "InvalidParameters",
            "Invalid date range provided",
            _elapsed_ms(start_time),
            type(e).__name__,
        )

    return await search_user_content_by_text(supabase_client, session_provider, user_id, search_text, opts)


async def search_user_content_by_source_type(
    supabase_client: Client,
    session_provider: SessionProvider,
    user_id: str,
    search_text: str,
    source_type: SourceType,
    options: SearchOptionsInput = None,
) -> SearchUserContentResponse:
    """Text search restricted to one content origin."""
    opts = _options_to_dict(options)
    opts["source_type_filter"] = source_type
    return await search_user_content_by_text(supabase_client, session_provider, user_id, search_text, opts)


async def search_user_content_high_precision(
    supabase_client: Client,
    session_provider: SessionProvider,
    user_id: str,
    search_text: str,
    options: SearchOptionsInput = None,
) -> SearchUserContentResponse:
    """Text search with a high similarity threshold (0.85)."""
    opts = _options_to_dict(options)
    opts["search_similarity_threshold"] = HIGH_PRECISION_THRESHOLD
    return await search_user_content_by_text(supabase_client, session_provider, user_id, search_text, opts)


async def search_user_content_broad(
    supabase_client: Client,
    session_provider: SessionProvider,
    user_id: str,
    search_text: str,
    options: SearchOptionsInput = None,
) -> SearchUserContentResponse:
    """Text search with a low similarity threshold (0.5)."""
    opts = _options_to_dict(options)
    opts["search_similarity_threshold"] = BROAD_THRESHOLD
    return await search_user_content_by_text(supabase_client, session_provider, user_id, search_text, opts)


# =============================================================================
# RESULT HELPERS
# =============================================================================

def deduplicate_search_results(
    results: Sequence[SearchUserContentResult],
) -> List[SearchUserContentResult]:
    """Drop repeated ids, keeping the first occurrence."""
    seen = set()
    unique = []
    for result in results:
        if result.id in seen:
            continue
        seen.add(result.id)
        unique.append(result)
    return unique


def merge_search_results(
    responses: Sequence[SearchUserContentResponse],
) -> SearchUserContentResponse:
    """
    Combine several responses (e.g. from a multi-topic search) into one.

    Results are concatenated in order and deduplicated by id, execution
    times are summed, and any errors are reported as one MultipleErrors
    error whose details list them as JSON.
    """
    all_results = [result for response in responses for result in response.results]
    unique_results = deduplicate_search_results(all_results)
    total_time = sum(response.execution_time_ms or 0 for response in responses)

    errors = [response.error for response in responses if response.error is not None]
    error = None
    if errors:
        error = SearchError(
            code="MultipleErrors",
            message=f"{len(errors)} errors occurred during search",
            details="[" + ",".join(err.model_dump_json(exclude_none=True) for err in errors) + "]",
        )

    return SearchUserContentResponse(
        results=unique_results,
        execution_time_ms=total_time,
        total_count=len(unique_results),
        error=error,
    )


# =============================================================================
# PERFORMANCE STATISTICS
# =============================================================================

class SearchPerformanceTracker:
    """
    Rolling execution-time and error statistics for recent searches.

    Keeps the last max_history samples only.
    """

    def __init__(self, max_history: int = PERFORMANCE_HISTORY_SIZE) -> None:
        self._samples: Deque[Tuple[float, bool]] = deque(maxlen=max_history)

    def record(self, execution_time_ms: float, has_error: bool) -> None:
        self._samples.append((execution_time_ms, has_error))

    def record_response(self, response: SearchUserContentResponse) -> None:
        self.record(response.execution_time_ms or 0.0, response.error is not None)

    def reset(self) -> None:
        self._samples.clear()

    def stats(self) -> SearchPerformanceStats:
        if not self._samples:
            return SearchPerformanceStats(
                average_execution_time=0,
                max_execution_time=0,
                min_execution_time=0,
                total_searches=0,
                success_rate=0,
            )

        times = [sample[0] for sample in self._samples]
        successes = sum(1 for _, has_error in self._samples if not has_error)

        return SearchPerformanceStats(
            average_execution_time=sum(times) / len(times),
            max_execution_time=max(times),
            min_execution_time=min(times),
            total_searches=len(times),
            success_rate=successes / len(self._samples),
        )


# Process-wide tracker fed by the search routes
search_performance = SearchPerformanceTracker()
