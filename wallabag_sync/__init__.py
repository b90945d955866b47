"""
Wallabag Sync - pull saved Wallabag articles into a notes vault.

This package fetches articles from a Wallabag server and writes each one
as a Markdown note (or PDF export) into a local vault, remembering which
articles were synced so repeated runs only add new ones.

Main entry point is the CLI via `wallabag-sync sync` command.

Example:
    $ wallabag-sync sync --vault ~/Notes -c wallabag.yaml
"""

__all__ = ["__version__", "SyncOrchestrator", "run_sync", "sanitize_filename"]
__version__ = "0.1.0"

from .core.paths import sanitize_filename
from .runner import SyncOrchestrator, run_sync
