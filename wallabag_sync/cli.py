"""
Command-line interface for Wallabag sync.

Uses Typer to provide a CLI with options for the most common configuration
settings. Loads .env files for access token configuration.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from dotenv import load_dotenv
import typer
from rich.console import Console

from .config import AppConfig, get_state_dir, load_config
from .core.errors import WallabagSyncError, SyncFailedError
from .core.synced import SyncedStore
from .output.store import FileSystemNoteStore
from .runner import run_sync, synced_path

app = typer.Typer(add_completion=False, help="Sync Wallabag articles into a notes vault.")
console = Console()


def _load(config: Path | None, vault: Path | None) -> AppConfig:
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if vault is not None:
        cfg.vault.root = str(vault)
    return cfg


@app.command()
def sync(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    vault: Path | None = typer.Option(None, "--vault", help="Vault root directory."),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
    concurrency: int | None = typer.Option(
        None, "--concurrency", min=1, help="Articles materialized at once."
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_format: str | None = typer.Option(
        None, "--log-format", help="Log file format: jsonl or plain."
    ),
    log_file: bool | None = typer.Option(
        None, "--log-file/--no-log-file", help="Enable or disable file logging."
    ),
    access_token: str | None = typer.Option(
        None,
        "--access-token",
        envvar="WALLABAG_ACCESS_TOKEN",
        help="Wallabag OAuth access token (or set WALLABAG_ACCESS_TOKEN / .env).",
    ),
):
    """Sync Wallabag articles into the vault.

    Fetches unread (or archived) articles, writes a note or PDF for every
    article not synced before, and records the synced ids.

    Args:
        config: Optional path to YAML config file
        vault: Vault root directory (overrides vault.root)
        progress: Whether to show a progress bar
        concurrency: Maximum number of articles processed at once
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log file format (jsonl, plain)
        log_file: Enable/disable file logging
        access_token: Wallabag access token
    """
    cfg = _load(config, vault)

    # Override with CLI options
    if access_token:
        cfg.wallabag.access_token = access_token
    if concurrency is not None:
        cfg.sync.concurrency = concurrency
    if log_level:
        cfg.logging.level = log_level
    if log_format:
        cfg.logging.format = log_format
    if log_file is not None:
        cfg.logging.file = log_file

    try:
        result = run_sync(cfg, show_progress=progress, console=console)
    except SyncFailedError as exc:
        for article_id, error in exc.failures:
            console.print(f"[red]Article {article_id}: {type(error).__name__}: {error}[/red]")
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    except WallabagSyncError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    stats = result.stats
    console.print(
        "[bold]Sync summary[/bold]: "
        f"fetched={stats.fetched}, new={stats.new}, written={stats.written}, "
        f"skipped={stats.skipped}, archived={stats.archived}"
    )


@app.command("clear-synced")
def clear_synced(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    vault: Path | None = typer.Option(None, "--vault", help="Vault root directory."),
):
    """Forget which articles were synced, so the next sync fetches all of them."""
    cfg = _load(config, vault)
    store = SyncedStore(FileSystemNoteStore(Path(cfg.vault.root)), synced_path(cfg))
    removed = asyncio.run(store.clear())
    if removed:
        console.print("Synced articles cache cleared.")
    else:
        console.print("No synced articles cache found.")


@app.command()
def status(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    vault: Path | None = typer.Option(None, "--vault", help="Vault root directory."),
):
    """Show how many articles have been synced."""
    cfg = _load(config, vault)
    store = SyncedStore(FileSystemNoteStore(Path(cfg.vault.root)), synced_path(cfg))
    try:
        ids = asyncio.run(store.load())
    except WallabagSyncError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    console.print(f"{len(ids)} article(s) synced ({get_state_dir(cfg) / cfg.vault.synced_filename})")


if __name__ == "__main__":
    app()
