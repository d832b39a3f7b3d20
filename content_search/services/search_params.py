"""
Search parameter validation and helpers.

is_valid_search_params() runs before any network call in the search layer.
It is pure: it never raises and signals invalid input only through its
boolean result.
"""

import math
from datetime import datetime, timezone
from numbers import Real
from typing import Any, Dict, List, Mapping, Sequence, Union

from pydantic import BaseModel

from content_search.schemas.search import (
    SearchUserContentParams,
    SearchUserContentResponse,
    SearchUserContentResult,
)
from content_search.utils.constants import SEARCH_USER_CONTENT_CONSTRAINTS

_DIMENSIONS = SEARCH_USER_CONTENT_CONSTRAINTS['VECTOR_DIMENSIONS']
_THRESHOLD = SEARCH_USER_CONTENT_CONSTRAINTS['SIMILARITY_THRESHOLD']
_MATCH_COUNT = SEARCH_USER_CONTENT_CONSTRAINTS['MATCH_COUNT']


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid search parameter
    return isinstance(value, Real) and not isinstance(value, bool)


def params_to_dict(params: Any) -> Dict[str, Any]:
    """Return the present (non-None) fields of a params model or mapping."""
    if isinstance(params, BaseModel):
        return params.model_dump(exclude_none=True)
    return {key: value for key, value in params.items() if value is not None}


def is_valid_search_params(params: Any) -> bool:
    """
    Check a search request's shape and numeric ranges.

    Accepts a mapping or a SearchUserContentParams model. Absent (or None)
    optional fields are not checked.

    Returns:
        True if every present field satisfies its constraint, False otherwise
    """
    if params is None or not isinstance(params, (Mapping, BaseModel)):
        return False

    p = params_to_dict(params)

    target_user_id = p.get("target_user_id")
    if not isinstance(target_user_id, str) or not target_user_id:
        return False

    query_vector = p.get("query_vector")
    if not isinstance(query_vector, (list, tuple)) or len(query_vector) != _DIMENSIONS:
        return False
    if not all(_is_number(v) and math.isfinite(v) for v in query_vector):
        return False

    if "search_similarity_threshold" in p:
        threshold = p["search_similarity_threshold"]
        if not _is_number(threshold) or not (_THRESHOLD['MIN'] <= threshold <= _THRESHOLD['MAX']):
            return False

    if "match_count" in p:
        match_count = p["match_count"]
        if not isinstance(match_count, int) or isinstance(match_count, bool):
            return False
        if not (_MATCH_COUNT['MIN'] <= match_count <= _MATCH_COUNT['MAX']):
            return False

    if "source_type_filter" in p:
        if p["source_type_filter"] not in SEARCH_USER_CONTENT_CONSTRAINTS['SOURCE_TYPES']:
            return False

    return True


def create_default_search_params(
    target_user_id: str,
    query_vector: List[float],
) -> SearchUserContentParams:
    """Build params with every optional field set to its default."""
    return SearchUserContentParams(
        target_user_id=target_user_id,
        query_vector=query_vector,
        search_similarity_threshold=_THRESHOLD['DEFAULT'],
        match_count=_MATCH_COUNT['DEFAULT'],
        active_only=True,
    )


def format_timestamp_for_postgres(value: Union[datetime, str]) -> str:
    """
    Format a timestamp as an ISO-8601 UTC string for timestamptz arguments.

    Accepts a datetime or an ISO-8601 string (a trailing "Z" means UTC).
    Naive values are taken to be UTC.

    Raises:
        ValueError: If value is neither a datetime nor a parseable string
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    elif not isinstance(value, datetime):
        raise ValueError(f"Unsupported timestamp value: {type(value).__name__}")

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def normalize_vector(vector: Sequence[float]) -> List[float]:
    """
    Scale a vector to unit length.

    Raises:
        ValueError: If the vector has zero magnitude
    """
    magnitude = math.sqrt(sum(v * v for v in vector))
    if magnitude == 0:
        raise ValueError("Cannot normalize zero vector")
    return [v / magnitude for v in vector]


def sort_search_results_by_similarity(
    results: Sequence[SearchUserContentResult],
    descending: bool = True,
) -> List[SearchUserContentResult]:
    """Return a new list sorted by similarity (stable for ties)."""
    return sorted(results, key=lambda r: r.similarity, reverse=descending)


def is_search_error(response: SearchUserContentResponse) -> bool:
    return response.error is not None
