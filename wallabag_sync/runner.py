"""
Sync pass orchestration.

One pass:
1. Check the Wallabag session
2. Load the ids synced by earlier passes
3. Fetch articles (unread or archived) from Wallabag
4. Keep only articles not synced before
5. Materialize each one as a note and/or PDF in the vault
6. Optionally archive each one on the server
7. Record synced ids

Materialization runs on a bounded pool of asyncio tasks. Each article's id is
recorded as soon as that article is done, so a failure in one article does
not cause the others to be written again on the next pass.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from .config import AppConfig, get_access_token, get_state_dir
from .core.errors import NotAuthenticatedError, SyncFailedError
from .core.lock import PassLock
from .core.paths import normalize_path, note_basename
from .core.synced import SyncedStore
from .core.types import Article, RenderedNote, SyncResult, SyncStats
from .output.markdown import html_to_markdown
from .output.notifier import ConsoleNotifier, Notifier
from .output.store import FileSystemNoteStore, NoteStore
from .output.templates import DEFAULT_TEMPLATE, PDF_TEMPLATE, NoteTemplate
from .utils.logging import log_event, setup_logging
from .wallabag.client import WallabagClient

LOCK_FILENAME = ".sync.lock"


class ArticleSource(Protocol):
    """The remote side of a pass."""

    @property
    def authenticated(self) -> bool: ...

    async def fetch_articles(self, archived: int) -> list[Article]: ...

    async def export_article(self, article_id: int) -> bytes: ...

    async def archive_article(self, article_id: int) -> None: ...


class SyncOrchestrator:
    """Runs one sync pass against an article source and a note store.

    Configuration is read-only for the orchestrator; build a new one per pass.
    """

    def __init__(
        self,
        cfg: AppConfig,
        source: ArticleSource,
        store: NoteStore,
        notifier: Notifier,
        logger: logging.Logger | None = None,
        progress: Progress | None = None,
    ):
        self.cfg = cfg
        self.source = source
        self.store = store
        self.notifier = notifier
        self.logger = logger or logging.getLogger("wallabag_sync")
        self.progress = progress
        self.synced = SyncedStore(store, synced_path(cfg))

        self._stats = SyncStats()
        self._claimed: set[str] = set()
        self._claim_lock = asyncio.Lock()
        self._record_lock = asyncio.Lock()
        self._recorded: list[int] = []
        self._previous: list[int] = []

    async def run(self) -> SyncResult:
        """Execute the pass.

        Returns:
            SyncResult with the ids synced by this pass

        Raises:
            NotAuthenticatedError: If the source has no session (nothing is read or written)
            SyncStateError: If the synced-ids file is malformed
            SyncFailedError: If any article failed; successful ones are still recorded
        """
        if not self.source.authenticated:
            self.notifier.notice("Please authenticate with Wallabag first.")
            raise NotAuthenticatedError("No Wallabag access token configured")

        notes = self.cfg.notes
        self._previous = await self.synced.load()
        previous = set(self._previous)

        handle = self.notifier.begin("Syncing from Wallabag..")
        log_event(
            self.logger,
            "Sync start",
            event="sync_start",
            previously_synced=len(previous),
            sync_archived=notes.sync_archived,
        )

        articles = await self.source.fetch_articles(1 if notes.sync_archived else 0)
        self._stats.fetched = len(articles)
        new_articles = _delta(articles, previous)
        self._stats.new = len(new_articles)
        log_event(
            self.logger,
            "Articles fetched",
            event="articles_fetched",
            fetched=len(articles),
            new=len(new_articles),
        )

        template = await self._user_template()
        outcomes = await self._materialize_all(new_articles, template)

        failures = [
            (article.id, exc)
            for article, exc in zip(new_articles, outcomes)
            if isinstance(exc, BaseException)
        ]
        synced_ids = [
            article.id
            for article, exc in zip(new_articles, outcomes)
            if not isinstance(exc, BaseException)
        ]
        await self.synced.save([*synced_ids, *self._previous])

        log_event(
            self.logger,
            "Sync complete",
            event="sync_complete",
            synced=len(synced_ids),
            written=self._stats.written,
            skipped=self._stats.skipped,
            archived=self._stats.archived,
            failed=self._stats.failed,
        )

        if failures:
            handle.set_message(
                f"Sync from Wallabag failed for {len(failures)} article(s). "
                f"{len(synced_ids)} new article(s) has been synced."
            )
            raise SyncFailedError(failures, len(synced_ids))

        handle.set_message(
            f"Sync from Wallabag is now completed. {len(synced_ids)} new article(s) has been synced."
        )
        return SyncResult(synced_ids=synced_ids, stats=self._stats)

    async def _user_template(self) -> NoteTemplate | None:
        path = self.cfg.notes.article_template
        if not path:
            return None
        if not path.endswith(".md"):
            path = f"{path}.md"
        template = NoteTemplate(await self.store.read(normalize_path(path)))
        unknown = sorted(template.unknown_placeholders())
        if unknown:
            self.logger.warning(
                f"Template {path} has unknown placeholders: {', '.join(unknown)}",
                extra={"event": "template_unknown_placeholders", "placeholders": unknown},
            )
        return template

    async def _materialize_all(
        self, articles: list[Article], template: NoteTemplate | None
    ) -> list[None | BaseException]:
        semaphore = asyncio.Semaphore(max(1, self.cfg.sync.concurrency))
        task_id = None
        if self.progress is not None:
            task_id = self.progress.add_task("Sync articles", total=len(articles))

        async def _run(article: Article) -> None:
            async with semaphore:
                try:
                    await self.materialize(article, template)
                except Exception:
                    self._stats.failed += 1
                    self.logger.exception(
                        f"Failed to sync article {article.id} ({article.title[:50]})",
                        extra={"event": "article_failed", "article_id": article.id},
                    )
                    raise
                finally:
                    if self.progress is not None and task_id is not None:
                        self.progress.advance(task_id, 1)

        tasks = [asyncio.create_task(_run(article)) for article in articles]
        return await asyncio.gather(*tasks, return_exceptions=True)

    async def materialize(self, article: Article, template: NoteTemplate | None) -> None:
        """Write one article into the vault, archive it if configured, record its id."""
        notes = self.cfg.notes
        vault = self.cfg.vault
        name = note_basename(article.title, article.id, notes.id_in_title)

        if not notes.download_as_pdf:
            note = self.render_note(article, template or DEFAULT_TEMPLATE, vault.folder, name)
            await self._create_if_absent(note, article)
        else:
            pdf_path = normalize_path(f"{vault.pdf_folder}/{name}.pdf")
            if await self._claim(pdf_path):
                pdf = await self.source.export_article(article.id)
                await self.store.write_binary(pdf_path, pdf)
                self._stats.written += 1
                log_event(
                    self.logger,
                    "PDF written",
                    event="pdf_written",
                    article_id=article.id,
                    path=pdf_path,
                    size=len(pdf),
                )
            else:
                self._skipped(pdf_path, article)
            if notes.create_pdf_note:
                note = self.render_note(
                    article, template or PDF_TEMPLATE, vault.folder, name, pdf_link=pdf_path
                )
                await self._create_if_absent(note, article)

        # Archived even when the write was skipped.
        if notes.archive_after_sync:
            await self.source.archive_article(article.id)
            self._stats.archived += 1
            log_event(self.logger, "Article archived", event="article_archived", article_id=article.id)

        await self._record(article.id)

    def render_note(
        self,
        article: Article,
        template: NoteTemplate,
        folder: str,
        name: str,
        pdf_link: str | None = None,
    ) -> RenderedNote:
        convert = self.cfg.convert
        content = template.fill(
            article,
            self.cfg.wallabag.server_url,
            convert_html=self.cfg.notes.convert_html_to_markdown,
            tag_format=self.cfg.notes.tag_format,
            pdf_link=pdf_link,
            converter=lambda html: html_to_markdown(html, convert.primary, convert.fallback),
        )
        return RenderedNote(path=normalize_path(f"{folder}/{name}.md"), content=content)

    async def _create_if_absent(self, note: RenderedNote, article: Article) -> None:
        if not await self._claim(note.path):
            self._skipped(note.path, article)
            return
        await self.store.create(note.path, note.content)
        self._stats.written += 1
        log_event(
            self.logger,
            "Note written",
            event="note_written",
            article_id=article.id,
            path=note.path,
        )

    async def _claim(self, path: str) -> bool:
        """Reserve a destination for this pass.

        Returns False if the file exists or another article of the same pass
        already claimed it.
        """
        async with self._claim_lock:
            if path in self._claimed or await self.store.exists(path):
                return False
            self._claimed.add(path)
            return True

    def _skipped(self, path: str, article: Article) -> None:
        self._stats.skipped += 1
        self.notifier.notice(f"File {path} already exists. Skipping..")
        log_event(
            self.logger,
            "File skipped",
            event="file_skipped",
            article_id=article.id,
            path=path,
        )

    async def _record(self, article_id: int) -> None:
        async with self._record_lock:
            self._recorded.append(article_id)
            await self.synced.save([*self._recorded, *self._previous])


def _delta(articles: list[Article], previous: set[int]) -> list[Article]:
    """Articles not synced before, in server order, each id at most once."""
    seen = set(previous)
    result = []
    for article in articles:
        if article.id in seen:
            continue
        seen.add(article.id)
        result.append(article)
    return result


def synced_path(cfg: AppConfig) -> str:
    return normalize_path(f"{cfg.vault.state_dir}/{cfg.vault.synced_filename}")


def build_client(cfg: AppConfig) -> WallabagClient:
    return WallabagClient(
        cfg.wallabag.server_url,
        get_access_token(cfg.wallabag),
        timeout=cfg.wallabag.timeout_seconds,
        retries=cfg.wallabag.retries,
        per_page=cfg.wallabag.per_page,
        trust_env=cfg.wallabag.trust_env,
    )


def run_sync(
    cfg: AppConfig,
    notifier: Notifier | None = None,
    show_progress: bool = True,
    console: Console | None = None,
) -> SyncResult:
    """Run one sync pass against the configured Wallabag server and vault.

    Args:
        cfg: Application configuration
        notifier: Where user notices go (defaults to the console)
        show_progress: Whether to display a progress bar
        console: Rich console for output (creates default if None)

    Returns:
        SyncResult for the pass
    """
    console = console or Console()
    # Only one live display at a time: the progress bar replaces the spinner.
    notifier = notifier or ConsoleNotifier(console, live=not show_progress)

    if not get_access_token(cfg.wallabag):
        notifier.notice("Please authenticate with Wallabag first.")
        raise NotAuthenticatedError("No Wallabag access token configured")

    state_dir = get_state_dir(cfg)
    logger = setup_logging(cfg.logging, state_dir)

    try:
        with PassLock(state_dir / LOCK_FILENAME):
            if not show_progress:
                return asyncio.run(_run_async(cfg, notifier, logger, None))

            progress = Progress(
                SpinnerColumn(),
                TextColumn("{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
            )
            with progress:
                return asyncio.run(_run_async(cfg, notifier, logger, progress))
    finally:
        if isinstance(notifier, ConsoleNotifier):
            notifier.close()


async def _run_async(
    cfg: AppConfig,
    notifier: Notifier,
    logger: logging.Logger,
    progress: Progress | None,
) -> SyncResult:
    store = FileSystemNoteStore(Path(cfg.vault.root))
    async with build_client(cfg) as client:
        orchestrator = SyncOrchestrator(cfg, client, store, notifier, logger, progress)
        return await orchestrator.run()
