"""
Authenticated access gate.

Resolves the caller's identity from the session on every operation and
checks it against the user a request targets. Identity is always passed
explicitly; nothing here caches or stores it between calls.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from supabase import AuthApiError, AuthSessionMissingError, Client

from content_search.auth.dependencies import AuthenticatedUser
from content_search.utils.errors import AccessDeniedError, UnauthenticatedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionIdentity:
    """Identity exposed by a session provider."""
    user_id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class AuthenticatedAccessContext:
    """
    Identity resolved for a single logical operation.

    Never shared across concurrent operations.
    """
    session_user_id: str
    email: Optional[str] = None


class SessionProvider(Protocol):
    async def get_current_identity(self) -> Optional[SessionIdentity]:
        """Return the session's identity, or None if unauthenticated."""
        ...


class SupabaseSessionProvider:
    """
    Session provider backed by Supabase Auth.

    Asks Supabase Auth for the user bound to the client's session
    (see content_search.db.client.get_supabase_client). Every call performs
    a fresh lookup. A rejected or missing session means no identity; other
    failures (network, Supabase Auth 5xx) propagate to the caller.
    """

    def __init__(self, supabase_client: Client) -> None:
        self._client = supabase_client

    async def get_current_identity(self) -> Optional[SessionIdentity]:
        try:
            response = await asyncio.to_thread(self._client.auth.get_user)
        except AuthSessionMissingError:
            logger.warning("No Supabase Auth session on the client")
            return None
        except AuthApiError as e:
            # 5xx means Supabase Auth is unavailable
            if e.status is not None and e.status >= 500:
                raise
            logger.warning(f"Supabase Auth rejected the session: {e.message}")
            return None

        user = getattr(response, "user", None) if response is not None else None
        if user is None or not getattr(user, "id", None):
            return None

        return SessionIdentity(user_id=str(user.id), email=getattr(user, "email", None))


class TokenSessionProvider:
    """Session provider for an already verified bearer token."""

    def __init__(self, auth_user: AuthenticatedUser) -> None:
        self._auth_user = auth_user

    async def get_current_identity(self) -> Optional[SessionIdentity]:
        if not self._auth_user.user_id:
            return None
        return SessionIdentity(user_id=self._auth_user.user_id, email=self._auth_user.email)


async def authorize_and_identify(session_provider: SessionProvider) -> AuthenticatedAccessContext:
    """
    Resolve the caller's identity for one operation.

    Raises:
        UnauthenticatedError: If the session has no valid user id
    """
    identity = await session_provider.get_current_identity()

    if identity is None or not identity.user_id:
        logger.warning("No authenticated session found")
        raise UnauthenticatedError("User authentication required")

    return AuthenticatedAccessContext(session_user_id=identity.user_id, email=identity.email)


def validate_user_access(
    session_user_id: str,
    resource_user_id: str,
    operation: str = "access",
) -> None:
    """
    Check that the session user owns the resource.

    Raises:
        AccessDeniedError: If the ids differ
    """
    if session_user_id != resource_user_id:
        logger.warning(
            f"Access denied: user {session_user_id} attempted {operation} "
            f"on resource owned by {resource_user_id}"
        )
        raise AccessDeniedError(
            f"Access denied: You can only {operation} your own data",
            user_id=session_user_id,
            operation=operation,
        )
