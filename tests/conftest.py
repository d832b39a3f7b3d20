"""
Pytest configuration for content search backend tests.

Sets up test environment and global fixtures.
"""
import os
import pytest
from unittest.mock import MagicMock

# Disable config validation during tests
# This allows tests to run without requiring real environment variables
os.environ["VALIDATE_CONFIG"] = "false"

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_PUBLISHABLE_KEY", "test-publishable-key")
os.environ.setdefault("GOOGLE_API_KEY", "test-google-api-key")

TEST_USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"


class StaticSessionProvider:
    """Session provider returning a fixed identity; counts lookups."""

    def __init__(self, user_id=TEST_USER_ID, email="test@example.com"):
        self.user_id = user_id
        self.email = email
        self.calls = 0

    async def get_current_identity(self):
        from content_search.auth.session import SessionIdentity

        self.calls += 1
        if self.user_id is None:
            return None
        return SessionIdentity(user_id=self.user_id, email=self.email)


def make_search_row(
    content_id="content-1",
    similarity=0.85,
    source_type="github",
    threshold=0.7,
    match_count=10,
):
    """Build a row shaped like the search_user_content RETURNS TABLE."""
    return {
        "id": content_id,
        "content_text": "Test content for vector search",
        "source_type": source_type,
        "source_url": "https://github.com/test/repo",
        "similarity": similarity,
        "metadata": {
            "model_name": "gemini-embedding-001",
            "embedding_created_at": "2024-01-01T00:00:00Z",
            "similarity_threshold": 0.7,
            "is_active": True,
            "metadata": {},
            "query_info": {
                "query_timestamp": "2024-01-01T12:00:00Z",
                "requested_threshold": threshold,
                "requested_count": match_count,
                "source_filter": None,
                "date_filter": {"start_date": None, "end_date": None},
            },
        },
        "created_at": "2024-01-01T00:00:00Z",
    }


@pytest.fixture
def test_vector():
    """A valid 1536-dimensional query vector."""
    return [0.01 * ((i % 7) + 1) for i in range(1536)]


@pytest.fixture
def session_provider():
    """Session provider authenticated as TEST_USER_ID."""
    return StaticSessionProvider()


@pytest.fixture
def supabase_client():
    """
    Mock Supabase client.
    Returns a MagicMock that simulates Supabase client behavior.
    """
    mock_client = MagicMock()
    return mock_client
