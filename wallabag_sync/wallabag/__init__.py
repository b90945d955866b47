"""
Wallabag API access.

This package contains the HTTP client used to list, export and archive
entries on a Wallabag server.
"""

from .client import (
    WallabagAuthError,
    WallabagClient,
    WallabagError,
    WallabagRateLimitError,
    parse_article,
)

__all__ = [
    "WallabagAuthError",
    "WallabagClient",
    "WallabagError",
    "WallabagRateLimitError",
    "parse_article",
]
