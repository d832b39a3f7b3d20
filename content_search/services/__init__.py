"""
Service layer for the content search backend.

Contains the search orchestration that:
- Validates search parameters before any network call
- Resolves the session identity and checks it against the target user
- Calls the search_user_content RPC under the user's token (RLS)
- Maps outcomes into SearchUserContentResponse envelopes

Services act as the glue between routes (HTTP layer) and the database.
"""

from .embedding_service import generate_text_embedding
from .search_params import (
    create_default_search_params,
    is_valid_search_params,
    normalize_vector,
)
from .search_service import (
    merge_search_results,
    search_performance,
    search_user_content,
    search_user_content_broad,
    search_user_content_by_date_range,
    search_user_content_by_source_type,
    search_user_content_by_text,
    search_user_content_by_topics,
    search_user_content_high_precision,
)

__all__ = [
    "generate_text_embedding",
    "create_default_search_params",
    "is_valid_search_params",
    "normalize_vector",
    "search_user_content",
    "search_user_content_by_text",
    "search_user_content_by_topics",
    "search_user_content_by_date_range",
    "search_user_content_by_source_type",
    "search_user_content_high_precision",
    "search_user_content_broad",
    "merge_search_results",
    "search_performance",
]
