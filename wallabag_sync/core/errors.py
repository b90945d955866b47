"""Exception hierarchy for Wallabag sync."""

from __future__ import annotations


class WallabagSyncError(Exception):
    """Base exception for sync failures."""


class NotAuthenticatedError(WallabagSyncError):
    """No Wallabag access token is available."""


class SyncStateError(WallabagSyncError):
    """The persisted synced-ids file cannot be parsed."""


class SyncInProgressError(WallabagSyncError):
    """Another pass holds the sync lock."""


class SyncFailedError(WallabagSyncError):
    """One or more articles failed to materialize.

    Articles that succeeded before or alongside the failures are still
    recorded as synced.

    Attributes:
        failures: (article id, exception) pairs in server order
        synced: Number of articles recorded as synced by the pass
    """

    def __init__(self, failures: list[tuple[int, BaseException]], synced: int) -> None:
        self.failures = failures
        self.synced = synced
        ids = ", ".join(str(article_id) for article_id, _ in failures)
        super().__init__(
            f"{len(failures)} article(s) failed to sync ({ids}); {synced} synced"
        )
