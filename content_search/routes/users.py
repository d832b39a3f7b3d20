"""
User record API endpoints.

- GET /users/me - Read the authenticated user's row in the users table
- PATCH /users/me - Update username, display name or avatar

Both go through the user data gate; the users table is owned through its
id column (the Supabase Auth user id).
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from postgrest.exceptions import APIError

from content_search.auth.dependencies import AuthenticatedUser, get_authenticated_user
from content_search.auth.session import SupabaseSessionProvider
from content_search.db.client import get_supabase_client
from content_search.db.user_data import get_user_data, update_user_data
from content_search.schemas.users import UserResponse, UserUpdateRequest
from content_search.utils.errors import ContentSearchError, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

TABLE = "users"


def _not_found(user_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": "not_found", "details": f"User record for {user_id} not found"}
    )


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get the authenticated user's record",
)
async def get_current_user(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> UserResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        rows = await get_user_data(
            supabase_client,
            SupabaseSessionProvider(supabase_client),
            TABLE,
            auth_user.user_id,
        )
    except ContentSearchError as e:
        logger.error(f"Failed to fetch user record for {auth_user.user_id}: {e.message}")
        raise to_http_exception(e)

    if not rows:
        raise _not_found(auth_user.user_id)

    return UserResponse.model_validate(rows[0])


@router.patch(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Update the authenticated user's record",
)
async def update_current_user(
    request: UserUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> UserResponse:
    updates = request.model_dump(exclude_unset=True)
    logger.info(f"Updating user record for {auth_user.user_id}: {list(updates.keys())}")

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        updated = await update_user_data(
            supabase_client,
            SupabaseSessionProvider(supabase_client),
            TABLE,
            auth_user.user_id,
            auth_user.user_id,
            updates,
        )
    except ContentSearchError as e:
        if isinstance(e.cause, APIError) and e.cause.code == "23505":  # unique_violation
            logger.warning(f"Username already taken (user {auth_user.user_id})")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"error": "username_taken", "details": "This username is already in use"}
            )
        logger.error(f"Failed to update user record for {auth_user.user_id}: {e.message}")
        raise to_http_exception(e)

    if updated is None:
        raise _not_found(auth_user.user_id)

    return UserResponse.model_validate(updated)
