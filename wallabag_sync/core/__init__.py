"""
Core domain models and sync state.

This package contains data types and logic that is independent of the
Wallabag API and of how notes are rendered.
"""

from .types import Annotation, Article, RenderedNote, SyncResult, SyncStats
from .paths import normalize_path, note_basename, sanitize_filename
from .errors import (
    NotAuthenticatedError,
    SyncFailedError,
    SyncInProgressError,
    SyncStateError,
    WallabagSyncError,
)

__all__ = [
    "Annotation",
    "Article",
    "RenderedNote",
    "SyncResult",
    "SyncStats",
    "normalize_path",
    "note_basename",
    "sanitize_filename",
    "NotAuthenticatedError",
    "SyncFailedError",
    "SyncInProgressError",
    "SyncStateError",
    "WallabagSyncError",
]
