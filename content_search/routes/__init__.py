"""
FastAPI routers for all API endpoints.

Each module defines a router for one area (search, content sources, users, ...).
Authenticated routers create a per-request Supabase client from the caller's
token and pass a session provider down to the service or data gate.
"""
