"""
Supabase client factory with RLS enforcement.

This module provides authenticated Supabase clients that automatically
enforce Row Level Security (RLS) by setting the user's JWT token.

CRITICAL SECURITY RULES:
1. NEVER use the service_role key for user operations
2. ALWAYS use the user's JWT token from Supabase Auth
3. RLS policies enforce user_id = auth.uid() on content_embeddings,
   content_sources and users
4. The client MUST be created per-request with the user's token
"""

import logging

from supabase import Client, create_client

from content_search.config import settings

logger = logging.getLogger(__name__)


def get_supabase_client(access_token: str) -> Client:
    """
    Create an authenticated Supabase client for a specific user.

    The client respects RLS because it carries the user's JWT access token.
    It is also what SupabaseSessionProvider asks for the current identity,
    so the session lookup and the data access share one token.

    Args:
        access_token: The user's JWT access token from Supabase Auth.
                      Verified in content_search/auth/dependencies.py.

    Returns:
        An authenticated Supabase client that enforces RLS.

    Example:
        >>> client = get_supabase_client(auth_user.access_token)
        >>> client.rpc("search_user_content", {...}).execute()
    """
    client: Client = create_client(
        supabase_url=settings.SUPABASE_URL,
        supabase_key=settings.SUPABASE_PUBLISHABLE_KEY
    )

    # The token's 'sub' claim is what auth.uid() returns inside RLS policies
    client.auth.set_session(access_token, access_token)

    logger.debug(
        "Created authenticated Supabase client with user token "
        "(RLS enforced)"
    )

    return client
