"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- WallabagConfig: Wallabag server and API client settings
- VaultConfig: Vault location and destination folders
- NotesConfig: Note rendering and sync behavior
- ConvertConfig: HTML to Markdown conversion settings
- SyncConfig: Pass execution settings
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any

import yaml


@dataclass
class WallabagConfig:
    """Configuration for the Wallabag API client.

    Attributes:
        server_url: Base URL of the Wallabag instance (no trailing /api)
        access_token: Optional inline OAuth access token (overrides env var)
        access_token_env: Environment variable name containing the access token
        timeout_seconds: HTTP request timeout
        retries: Number of retry attempts when rate limited
        per_page: Page size used when listing entries
        trust_env: Whether to respect system proxy settings
    """

    server_url: str = "https://app.wallabag.it"
    access_token: str | None = None
    access_token_env: str = "WALLABAG_ACCESS_TOKEN"
    timeout_seconds: float = 30.0
    retries: int = 2
    per_page: int = 30
    trust_env: bool = True


@dataclass
class VaultConfig:
    """Configuration for the local vault.

    Attributes:
        root: Vault root directory
        folder: Vault-relative folder for Markdown notes
        pdf_folder: Vault-relative folder for PDF exports
        state_dir: Vault-relative private directory for sync state and logs
        synced_filename: Name of the synced-ids file inside state_dir
    """

    root: str = "."
    folder: str = "Wallabag"
    pdf_folder: str = "Wallabag/pdf"
    state_dir: str = ".wallabag"
    synced_filename: str = ".synced"


@dataclass
class NotesConfig:
    """Configuration for note rendering and per-article behavior.

    Attributes:
        article_template: Vault-relative template path ("" uses the built-in templates)
        id_in_title: Append "-{id}" to note filenames
        download_as_pdf: Export articles as PDF instead of Markdown notes
        create_pdf_note: Also create a note linking to each exported PDF
        archive_after_sync: Archive articles on the server once synced
        sync_archived: Sync archived articles instead of unread ones
        convert_html_to_markdown: Convert article HTML to Markdown in notes
        tag_format: "csv" or "hashtag"
    """

    article_template: str = ""
    id_in_title: bool = False
    download_as_pdf: bool = False
    create_pdf_note: bool = False
    archive_after_sync: bool = False
    sync_archived: bool = False
    convert_html_to_markdown: bool = True
    tag_format: str = "csv"


@dataclass
class ConvertConfig:
    """Configuration for HTML to Markdown conversion.

    Attributes:
        primary: Primary converter ("bs4" or "trafilatura")
        fallback: Converters to try if primary produces nothing
    """

    primary: str = "bs4"
    fallback: list[str] = field(default_factory=lambda: ["trafilatura"])


@dataclass
class SyncConfig:
    """Configuration for pass execution.

    Attributes:
        concurrency: Maximum number of articles materialized at once
    """

    concurrency: int = 4


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file (inside the vault state directory)
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
    """

    level: str = "WARNING"
    console: bool = True
    file: bool = True
    format: str = "jsonl"
    filename: str = "sync.jsonl"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    wallabag: WallabagConfig = field(default_factory=WallabagConfig)
    vault: VaultConfig = field(default_factory=VaultConfig)
    notes: NotesConfig = field(default_factory=NotesConfig)
    convert: ConvertConfig = field(default_factory=ConvertConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


DEFAULT_CONFIG = AppConfig()


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return _fromdict(_asdict(DEFAULT_CONFIG))

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(DEFAULT_CONFIG, raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = _asdict(base)
    for key, value in raw.items():
        if key not in data or value is None:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update({k: v for k, v in value.items() if k in data[key]})
        else:
            data[key] = value
    return _fromdict(data)


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return {
        "wallabag": {
            "server_url": cfg.wallabag.server_url,
            "access_token": cfg.wallabag.access_token,
            "access_token_env": cfg.wallabag.access_token_env,
            "timeout_seconds": cfg.wallabag.timeout_seconds,
            "retries": cfg.wallabag.retries,
            "per_page": cfg.wallabag.per_page,
            "trust_env": cfg.wallabag.trust_env,
        },
        "vault": {
            "root": cfg.vault.root,
            "folder": cfg.vault.folder,
            "pdf_folder": cfg.vault.pdf_folder,
            "state_dir": cfg.vault.state_dir,
            "synced_filename": cfg.vault.synced_filename,
        },
        "notes": {
            "article_template": cfg.notes.article_template,
            "id_in_title": cfg.notes.id_in_title,
            "download_as_pdf": cfg.notes.download_as_pdf,
            "create_pdf_note": cfg.notes.create_pdf_note,
            "archive_after_sync": cfg.notes.archive_after_sync,
            "sync_archived": cfg.notes.sync_archived,
            "convert_html_to_markdown": cfg.notes.convert_html_to_markdown,
            "tag_format": cfg.notes.tag_format,
        },
        "convert": {
            "primary": cfg.convert.primary,
            "fallback": list(cfg.convert.fallback),
        },
        "sync": {
            "concurrency": cfg.sync.concurrency,
        },
        "logging": {
            "level": cfg.logging.level,
            "console": cfg.logging.console,
            "file": cfg.logging.file,
            "format": cfg.logging.format,
            "filename": cfg.logging.filename,
        },
    }


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        wallabag=WallabagConfig(**data["wallabag"]),
        vault=VaultConfig(**data["vault"]),
        notes=NotesConfig(**data["notes"]),
        convert=ConvertConfig(**data["convert"]),
        sync=SyncConfig(**data["sync"]),
        logging=LoggingConfig(**data["logging"]),
    )


def get_access_token(cfg: WallabagConfig) -> str | None:
    """Get Wallabag access token from inline config or environment variable."""
    if cfg.access_token:
        return cfg.access_token
    if cfg.access_token_env:
        return os.getenv(cfg.access_token_env) or None
    return None


def get_state_dir(cfg: AppConfig) -> Path:
    """Absolute path of the vault's private state directory."""
    return Path(cfg.vault.root).expanduser() / cfg.vault.state_dir
