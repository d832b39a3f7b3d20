"""
Logging utilities for the content search backend.

Provides standardized logger configuration following the privacy rules.

CRITICAL PRIVACY RULES:
- NEVER log Supabase Auth tokens, API keys, or secrets
- NEVER log query vectors or embeddings
- NEVER log full content_text of search results or user queries

Acceptable logging:
- High-level events (e.g., "search_user_content invoked", "embedding generated")
- Non-sensitive metadata (e.g., result counts, thresholds, execution time)
- Error codes and sanitized error messages
"""

import logging
from typing import Optional

from content_search.config import settings


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a configured logger for the specified module.

    Args:
        name: Module name (typically __name__)
        level: Optional logging level (defaults to settings.LOG_LEVEL)

    Returns:
        Configured logger instance

    Usage:
        >>> from content_search.utils.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("High-level event occurred")
    """
    logger = logging.getLogger(name)

    if level is None:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger.setLevel(level)

    # Add handler if not already configured (avoid duplicate handlers)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
