"""User-scoped semantic content search over Supabase (pgvector) with RLS."""

__version__ = "0.1.0"
