"""
User data gate.

Generic user-scoped get/create/update/delete over the user's own tables.
Every operation:
1. Resolves the session identity fresh (no caching across calls)
2. Rejects requests for another user's data before any store call
3. Validates table and column names against USER_TABLE_COLUMNS
4. Filters by the owner column explicitly, even though RLS enforces it too

Failures are raised as typed errors (see content_search.utils.errors),
never returned as values.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar, Union, cast

from postgrest.exceptions import APIError
from supabase import Client

from content_search.auth.session import SessionProvider, authorize_and_identify, validate_user_access
from content_search.utils.constants import PROTECTED_COLUMNS, USER_TABLE_COLUMNS, USER_TABLE_OWNER_COLUMN
from content_search.utils.errors import ContentSearchError, InvalidParametersError, UserDataError

logger = logging.getLogger(__name__)

T = TypeVar("T")

FilterValue = Union[str, int, float, bool, None]


def _owner_column(table: str) -> str:
    return USER_TABLE_OWNER_COLUMN.get(table, "user_id")


def _check_columns(table: str, columns: Iterable[str], user_id: str, operation: str) -> None:
    allowed = USER_TABLE_COLUMNS.get(table)
    if allowed is None:
        raise InvalidParametersError(
            f"Table '{table}' is not accessible through the user data gate",
            user_id=user_id,
            operation=operation,
        )

    unknown = sorted(set(columns) - allowed)
    if unknown:
        raise InvalidParametersError(
            f"Unknown columns for {table}: {', '.join(unknown)}",
            user_id=user_id,
            operation=operation,
        )


def _check_filters(table: str, filters: Mapping[str, Any], user_id: str) -> None:
    _check_columns(table, filters.keys(), user_id, "read")

    for key, value in filters.items():
        if value is not None and not isinstance(value, (str, int, float, bool)):
            raise InvalidParametersError(
                f"Filter '{key}' must be a scalar value",
                user_id=user_id,
                operation="read",
            )


def _writable_payload(table: str, data: Mapping[str, Any], user_id: str, operation: str) -> Dict[str, Any]:
    payload = {key: value for key, value in data.items() if key not in PROTECTED_COLUMNS}
    _check_columns(table, payload.keys(), user_id, operation)
    return payload


async def with_user_context(
    session_provider: SessionProvider,
    operation: Callable[[str], Awaitable[T]],
) -> T:
    """
    Run a data operation for the current session user.

    The session user id is resolved once and passed to the operation.
    Typed errors propagate unchanged; anything else is wrapped in
    UserDataError.

    Raises:
        UnauthenticatedError: If the session has no user
        UserDataError: If the session lookup or the operation fails unexpectedly
    """
    try:
        context = await authorize_and_identify(session_provider)
    except ContentSearchError:
        raise
    except Exception as e:
        logger.error(f"Session lookup failed: {e}", exc_info=True)
        raise UserDataError(
            "Failed to resolve session identity",
            operation="authorize",
            cause=e,
        ) from e

    try:
        return await operation(context.session_user_id)
    except ContentSearchError:
        raise
    except Exception as e:
        logger.error(f"Database operation failed for user {context.session_user_id}: {e}", exc_info=True)
        raise UserDataError(
            f"Database operation failed: {e}",
            user_id=context.session_user_id,
            operation="database_operation",
            cause=e,
        ) from e


async def get_user_data(
    supabase_client: Client,
    session_provider: SessionProvider,
    table: str,
    user_id: str,
    filters: Optional[Mapping[str, FilterValue]] = None,
) -> List[Dict[str, Any]]:
    """
    Fetch the user's rows from a table.

    Args:
        supabase_client: Authenticated Supabase client
        session_provider: Source of the caller's identity
        table: Table name (must be listed in USER_TABLE_COLUMNS)
        user_id: The user whose rows are requested (must be the caller)
        filters: Extra equality filters, column name to scalar (None matches NULL)

    Returns:
        List of row dicts (empty if none match)

    Raises:
        AccessDeniedError: If user_id is not the session user
        InvalidParametersError: If the table or a filter column is not allowed
        UserDataError: If the store rejects the query
    """
    filters = dict(filters or {})

    async def _read(session_user_id: str) -> List[Dict[str, Any]]:
        validate_user_access(session_user_id, user_id, "read")
        _check_filters(table, filters, user_id)

        def _execute() -> Any:
            query = supabase_client.table(table).select("*").eq(_owner_column(table), user_id)
            for key, value in filters.items():
                query = query.is_(key, "null") if value is None else query.eq(key, value)
            return query.execute()

        logger.debug(f"Reading {table} for user {user_id} (filters={list(filters.keys())})")

        try:
            result = await asyncio.to_thread(_execute)
        except APIError as e:
            raise UserDataError(
                f"Failed to fetch user data from {table}",
                user_id=user_id,
                operation="read",
                cause=e,
            ) from e

        rows = cast(List[Dict[str, Any]], result.data or [])
        logger.info(f"Found {len(rows)} {table} rows for user {user_id}")
        return rows

    return await with_user_context(session_provider, _read)


async def create_user_data(
    supabase_client: Client,
    session_provider: SessionProvider,
    table: str,
    user_id: str,
    data: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Insert a row owned by the user.

    The owner column is always set to the authenticated user id; id,
    user_id, created_at and updated_at in data are ignored.

    Raises:
        AccessDeniedError: If user_id is not the session user
        InvalidParametersError: If the table or a column is not allowed
        UserDataError: If the store rejects the insert or returns nothing
    """
    async def _create(session_user_id: str) -> Dict[str, Any]:
        validate_user_access(session_user_id, user_id, "create")
        payload = _writable_payload(table, data, user_id, "create")
        payload[_owner_column(table)] = session_user_id

        logger.info(f"Creating {table} row for user {user_id}: {sorted(payload.keys())}")

        try:
            result = await asyncio.to_thread(
                lambda: supabase_client.table(table).insert(payload).execute()
            )
        except APIError as e:
            raise UserDataError(
                f"Failed to create user data in {table}",
                user_id=user_id,
                operation="create",
                cause=e,
            ) from e

        if not result.data:
            raise UserDataError(
                f"Failed to create user data in {table}: no data returned",
                user_id=user_id,
                operation="create",
            )

        created = cast(Dict[str, Any], result.data[0])
        logger.info(f"{table} row created for user {user_id}: {created.get('id')}")
        return created

    return await with_user_context(session_provider, _create)


async def update_user_data(
    supabase_client: Client,
    session_provider: SessionProvider,
    table: str,
    user_id: str,
    row_id: str,
    data: Mapping[str, Any],
) -> Optional[Dict[str, Any]]:
    """
    Update one of the user's rows.

    The update is filtered by both id and the owner column.

    Returns:
        The updated row, or None if no row of this user has that id

    Raises:
        AccessDeniedError: If user_id is not the session user
        InvalidParametersError: If the table or a column is not allowed, or
            nothing updatable was given
        UserDataError: If the store rejects the update
    """
    async def _update(session_user_id: str) -> Optional[Dict[str, Any]]:
        validate_user_access(session_user_id, user_id, "update")
        payload = _writable_payload(table, data, user_id, "update")
        if not payload:
            raise InvalidParametersError(
                "No updatable fields provided",
                user_id=user_id,
                operation="update",
            )

        logger.info(f"Updating {table} row {row_id} for user {user_id}: {sorted(payload.keys())}")

        try:
            result = await asyncio.to_thread(
                lambda: supabase_client.table(table)
                .update(payload)
                .eq("id", row_id)
                .eq(_owner_column(table), user_id)
                .execute()
            )
        except APIError as e:
            raise UserDataError(
                f"Failed to update user data in {table}",
                user_id=user_id,
                operation="update",
                cause=e,
            ) from e

        if not result.data:
            logger.warning(f"{table} row {row_id} not found for user {user_id}")
            return None

        return cast(Dict[str, Any], result.data[0])

    return await with_user_context(session_provider, _update)


async def delete_user_data(
    supabase_client: Client,
    session_provider: SessionProvider,
    table: str,
    user_id: str,
    row_id: str,
) -> bool:
    """
    Delete one of the user's rows.

    Returns:
        True if a row was deleted, False if no row of this user has that id

    Raises:
        AccessDeniedError: If user_id is not the session user
        InvalidParametersError: If the table is not allowed
        UserDataError: If the store rejects the delete
    """
    async def _delete(session_user_id: str) -> bool:
        validate_user_access(session_user_id, user_id, "delete")
        _check_columns(table, (), user_id, "delete")

        logger.info(f"Deleting {table} row {row_id} for user {user_id}")

        try:
            result = await asyncio.to_thread(
                lambda: supabase_client.table(table)
                .delete()
                .eq("id", row_id)
                .eq(_owner_column(table), user_id)
                .execute()
            )
        except APIError as e:
            raise UserDataError(
                f"Failed to delete user data from {table}",
                user_id=user_id,
                operation="delete",
                cause=e,
            ) from e

        deleted = bool(result.data)
        if not deleted:
            logger.warning(f"{table} row {row_id} not found for user {user_id}")
        return deleted

    return await with_user_context(session_provider, _delete)
