"""
Pydantic schemas for authentication endpoints.
"""

from typing import Optional
from pydantic import BaseModel, Field


class AuthMeResponse(BaseModel):
    """
    Response for GET /auth/me - Authenticated user identity.

    Used on app boot to hydrate session state and confirm token validity.
    """
    user_id: str = Field(..., description="User UUID (from JWT 'sub' claim)")
    email: Optional[str] = Field(
        None,
        description="User's email (from JWT 'email' claim, if present)"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "38f7d540-23fa-497a-8df2-3ab9cbe13da5",
                    "email": "user@example.com"
                }
            ]
        }
    }
