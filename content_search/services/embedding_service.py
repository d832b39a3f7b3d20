"""
Embedding Service - Gemini text embeddings

Converts free text into query vectors for content search.

Architecture:
- Model: settings.EMBEDDING_MODEL (gemini-embedding-001 by default)
- API: Google Gen AI Python SDK (google-genai), async client (client.aio)
- Output: 1536 dimensions (output_dimensionality), matching
  content_embeddings.embedding
- Task type: RETRIEVAL_QUERY

Reduced-dimension Gemini embeddings are not unit length, so vectors are
normalized before they are returned.
"""

import logging
from typing import List, Optional

from google import genai
from google.genai import types

from content_search.config import settings
from content_search.services.search_params import normalize_vector
from content_search.utils.constants import SEARCH_USER_CONTENT_CONSTRAINTS
from content_search.utils.errors import EmbeddingError

logger = logging.getLogger(__name__)

EMBEDDING_DIMENSIONS = SEARCH_USER_CONTENT_CONSTRAINTS['VECTOR_DIMENSIONS']

# Gemini client (lazy initialization)
_gemini_client: Optional[genai.Client] = None


def _get_gemini_client() -> Optional[genai.Client]:
    """
    Lazy initialization of the Gemini client.

    Returns None if GOOGLE_API_KEY is not configured or the client
    cannot be created.
    """
    global _gemini_client

    if _gemini_client is not None:
        return _gemini_client

    if not settings.GOOGLE_API_KEY:
        logger.warning(
            "GOOGLE_API_KEY not configured. Text search will not work. "
            "Please set GOOGLE_API_KEY in your .env file."
        )
        return None

    try:
        _gemini_client = genai.Client(api_key=settings.GOOGLE_API_KEY)
        logger.info("Gemini client initialized successfully for embeddings")
        return _gemini_client
    except Exception as e:
        logger.error(f"Failed to initialize Gemini client: {e}")
        return None


async def generate_text_embedding(text: str) -> List[float]:
    """
    Embed a search query.

    Args:
        text: Free-text query (must not be blank)

    Returns:
        Unit-length vector with exactly EMBEDDING_DIMENSIONS values

    Raises:
        EmbeddingError: If the text is blank, the client is unavailable,
            the API call fails, or the vector is malformed
    """
    if not text or not text.strip():
        raise EmbeddingError("Failed to generate text embedding: empty text")

    client = _get_gemini_client()
    if client is None:
        raise EmbeddingError("Failed to generate text embedding: embedding client not configured")

    try:
        response = await client.aio.models.embed_content(
            model=settings.EMBEDDING_MODEL,
            contents=text,
            config=types.EmbedContentConfig(
                task_type="RETRIEVAL_QUERY",
                output_dimensionality=EMBEDDING_DIMENSIONS,
            ),
        )
    except Exception as e:
        logger.error(f"Embedding request failed: {e}")
        raise EmbeddingError(f"Failed to generate text embedding: {e}", cause=e) from e

    if not response.embeddings or not response.embeddings[0].values:
        raise EmbeddingError("Failed to generate text embedding: empty response")

    values = list(response.embeddings[0].values)
    if len(values) != EMBEDDING_DIMENSIONS:
        raise EmbeddingError(
            f"Failed to generate text embedding: expected {EMBEDDING_DIMENSIONS} "
            f"dimensions, got {len(values)}"
        )

    try:
        vector = normalize_vector(values)
    except ValueError as e:
        raise EmbeddingError(f"Failed to generate text embedding: {e}", cause=e) from e

    logger.debug(f"Generated query embedding ({len(vector)} dimensions)")
    return vector
