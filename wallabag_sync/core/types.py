"""
Core data types for Wallabag sync.

This module defines the fundamental data structures used throughout a pass:
- Article: A saved entry as returned by the Wallabag API
- Annotation: A highlight attached to an article
- RenderedNote: A note or document ready to be written into the vault
- SyncStats: Counters collected while materializing articles
- SyncResult: Outcome of one sync pass
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Annotation:
    """A highlight made on an article in Wallabag.

    Attributes:
        text: The note written on the highlight (may be empty)
        quote: The highlighted passage
        created_at: ISO 8601 creation timestamp
    """

    text: str = ""
    quote: str = ""
    created_at: str | None = None


@dataclass(frozen=True)
class Article:
    """A saved article owned by the Wallabag server.

    The sync only ever reads articles; ids are unique and stable across passes.

    Attributes:
        id: Wallabag entry id
        title: Article headline
        url: Original URL of the article
        content: Article body as HTML
        tags: Tag labels in server order
        is_archived: Whether the entry is archived on the server
        is_starred: Whether the entry is starred
        created_at: ISO 8601 timestamp the entry was saved
        updated_at: ISO 8601 timestamp of the last update
        archived_at: ISO 8601 timestamp the entry was archived
        published_at: ISO 8601 publication timestamp from the source site
        published_by: Authors reported by the source site
        reading_time: Estimated reading time in minutes
        domain_name: Host of the original URL
        preview_picture: URL of the preview image
        annotations: Highlights attached to the entry
    """

    id: int
    title: str
    url: str
    content: str = ""
    tags: tuple[str, ...] = ()
    is_archived: bool = False
    is_starred: bool = False
    created_at: str | None = None
    updated_at: str | None = None
    archived_at: str | None = None
    published_at: str | None = None
    published_by: tuple[str, ...] = ()
    reading_time: int | None = None
    domain_name: str | None = None
    preview_picture: str | None = None
    annotations: tuple[Annotation, ...] = ()


@dataclass
class RenderedNote:
    """A note or binary document produced for one article.

    Attributes:
        path: Normalized vault-relative destination path
        content: Note text, or raw bytes for binary documents
    """

    path: str
    content: str | bytes


@dataclass
class SyncStats:
    """Statistics collected during a pass.

    Attributes:
        fetched: Number of articles returned by the server
        new: Number of articles not synced before
        written: Number of files written to the vault
        skipped: Number of writes skipped because the destination existed
        archived: Number of articles archived on the server
        failed: Number of articles whose materialization failed
    """

    fetched: int = 0
    new: int = 0
    written: int = 0
    skipped: int = 0
    archived: int = 0
    failed: int = 0


@dataclass
class SyncResult:
    """Outcome of one sync pass.

    Attributes:
        synced_ids: Ids recorded as synced by this pass, in server order
        stats: Counters for the pass
    """

    synced_ids: list[int] = field(default_factory=list)
    stats: SyncStats = field(default_factory=SyncStats)

    @property
    def count(self) -> int:
        return len(self.synced_ids)
