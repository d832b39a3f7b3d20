"""
Pydantic schemas for the authenticated user's own record (users table).
"""

from typing import Optional

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    id: str = Field(..., description="Supabase Auth user id")
    email: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: str
    updated_at: str


class UserUpdateRequest(BaseModel):
    """Partial update of the user's profile fields."""
    username: Optional[str] = Field(
        None,
        pattern=r'^[a-zA-Z0-9_-]{3,50}$',
        description="3-50 letters, numbers, hyphens or underscores"
    )
    display_name: Optional[str] = Field(None, max_length=200)
    avatar_url: Optional[str] = Field(None, max_length=2000)
