"""Filename sanitization and vault path normalization."""

from __future__ import annotations

import re
import unicodedata

# Characters that are illegal or special in vault file names and links.
_RESERVED_RE = re.compile(r'[\\,#%&{}/*<>$"@.?]')
_SEPARATOR_RE = re.compile(r"[:|]")
_SLASHES_RE = re.compile(r"/+")


def sanitize_filename(title: str) -> str:
    """Replace reserved characters in a title with spaces.

    Distinct titles that differ only in reserved characters map to the same
    name (e.g. "A/B" and "A?B" both become "A B").

    Args:
        title: The article title

    Returns:
        The title with each reserved character replaced by a single space
    """
    return _SEPARATOR_RE.sub(" ", _RESERVED_RE.sub(" ", title))


def note_basename(title: str, article_id: int, id_in_title: bool) -> str:
    """Build the file stem used for an article's note and PDF.

    Args:
        title: The article title
        article_id: Wallabag entry id
        id_in_title: Whether to append "-{id}" to disambiguate equal titles

    Returns:
        File stem without extension
    """
    name = sanitize_filename(title)
    if id_in_title:
        return f"{name}-{article_id}"
    return name


def normalize_path(path: str) -> str:
    """Canonicalize a vault-relative path.

    - Backslashes become forward slashes
    - Repeated slashes collapse to one
    - Leading and trailing slashes are removed
    - Non-breaking spaces become regular spaces
    - Unicode is NFC-normalized

    An empty result maps to "/" (the vault root).
    """
    normalized = path.replace("\\", "/").replace(" ", " ").replace(" ", " ")
    normalized = _SLASHES_RE.sub("/", normalized).strip("/")
    normalized = unicodedata.normalize("NFC", normalized)
    return normalized or "/"
