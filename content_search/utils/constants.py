"""
Constants shared by the search layer and the user data gate.

SEARCH_USER_CONTENT_CONSTRAINTS mirrors the argument limits of the
search_user_content Postgres function.
"""

SOURCE_TYPES = (
    "github",
    "rss",
    "news",
    "api",
    "webhook",
    "manual",
    "test",
    "unknown",
)

SEARCH_USER_CONTENT_CONSTRAINTS = {
    # Embedding width of content_embeddings.embedding (vector(1536))
    'VECTOR_DIMENSIONS': 1536,

    'SIMILARITY_THRESHOLD': {
        'MIN': 0.0,
        'MAX': 1.0,
        'DEFAULT': 0.7,
    },

    'MATCH_COUNT': {
        'MIN': 0,
        'MAX': 1000,
        'DEFAULT': 10,
    },

    'SOURCE_TYPES': SOURCE_TYPES,

    'PERFORMANCE': {
        'MAX_EXECUTION_TIME_MS': 3000,
        'WARNING_THRESHOLD_MS': 1000,
    },
}

# Threshold presets used by the convenience searches
HIGH_PRECISION_THRESHOLD = 0.85
BROAD_THRESHOLD = 0.5

# Name of the similarity search RPC
SEARCH_USER_CONTENT_RPC = "search_user_content"

# Number of samples kept by the search performance tracker
PERFORMANCE_HISTORY_SIZE = 100

# Columns the user data gate accepts in filters and payloads, per table.
# Tables not listed here are rejected before any store call.
USER_TABLE_COLUMNS = {
    "users": frozenset({
        "id", "email", "username", "display_name",
        "avatar_url", "google_id", "created_at", "updated_at",
    }),
    "content_sources": frozenset({
        "id", "user_id", "source_type", "name", "url", "config",
        "last_fetched_at", "fetch_count", "error_count", "last_error",
        "is_active", "created_at", "updated_at",
    }),
    "content_embeddings": frozenset({
        "id", "user_id", "content_text", "content_hash", "source_type",
        "source_url", "embedding", "model_name", "embedding_created_at",
        "similarity_threshold", "is_active", "metadata",
        "created_at", "updated_at",
    }),
}

# Column holding the owning user id, where it is not "user_id"
USER_TABLE_OWNER_COLUMN = {
    "users": "id",
}

# Columns owned by the database; never taken from a caller's payload
PROTECTED_COLUMNS = frozenset({"id", "user_id", "created_at", "updated_at"})
