"""
Typed errors for the authenticated data access layer.

The search layer never raises these to its callers; it converts them into
error envelopes. The user data gate raises them so that routes can map them
to HTTP responses.
"""

from typing import Optional

from fastapi import HTTPException


class ContentSearchError(Exception):
    """
    Base error carrying the failure kind and the context it happened in.

    Attributes:
        message: Human-readable description
        user_id: The user the operation was performed for, if known
        operation: Operation name (read, create, update, delete, search, ...)
        cause: The underlying exception, if any
    """
    code: str = "UnknownError"

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        operation: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.operation = operation
        self.cause = cause


class InvalidParametersError(ContentSearchError):
    """Request failed validation before reaching the network."""
    code = "InvalidParameters"


class UnauthenticatedError(ContentSearchError):
    """No identity could be resolved from the session."""
    code = "Unauthenticated"


class AccessDeniedError(ContentSearchError):
    """The session identity does not own the requested resource."""
    code = "AccessDenied"


class UserDataError(ContentSearchError):
    """The underlying store rejected a user data operation."""
    code = "DatabaseError"


class EmbeddingError(ContentSearchError):
    """Embedding generation failed or returned a malformed vector."""
    code = "TextSearchError"


_HTTP_STATUS = {
    "InvalidParameters": 422,
    "Unauthenticated": 401,
    "AccessDenied": 403,
}


def to_http_exception(error: ContentSearchError) -> HTTPException:
    """Map a typed error to the HTTPException routes raise for it."""
    status_code = _HTTP_STATUS.get(error.code, 500)
    # Store messages may include internals; only client errors are echoed
    details = error.message if status_code != 500 else "Failed to access user data"
    return HTTPException(
        status_code=status_code,
        detail={"error": error.code, "details": details}
    )
