"""
Database access layer for the content search backend.

All database operations MUST:
- Respect Row Level Security (RLS): user_id = auth.uid()
- Never bypass RLS (no service role key for user operations)
- Check the session identity against the requested user before any query

Includes:
- Supabase client initialization
- The user data gate (user-scoped get/create/update/delete)
"""

from .client import get_supabase_client

__all__ = ["get_supabase_client"]
