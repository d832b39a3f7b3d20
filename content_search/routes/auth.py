"""
Auth API endpoints.

- GET /auth/me - Get authenticated user identity

All endpoints require valid Bearer token authentication.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from content_search.auth.dependencies import AuthenticatedUser, get_authenticated_user
from content_search.schemas.auth import AuthMeResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get(
    "/me",
    response_model=AuthMeResponse,
    status_code=status.HTTP_200_OK,
    summary="Get authenticated user identity",
    description="""
    Get the authenticated user's identity for session hydration.

    Returns user_id and email from the verified JWT claims. Clients use the
    user_id as target_user_id for search requests.
    """
)
async def get_auth_me(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> AuthMeResponse:
    """Get the authenticated user's identity."""
    logger.debug(f"auth/me for user_id={auth_user.user_id}")
    return AuthMeResponse(user_id=auth_user.user_id, email=auth_user.email)
