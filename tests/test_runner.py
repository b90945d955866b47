"""Tests for the sync pass orchestrator."""

import asyncio
import json
import logging
from pathlib import Path

import pytest

from wallabag_sync.config import AppConfig, get_state_dir
from wallabag_sync.core.errors import (
    NotAuthenticatedError,
    SyncFailedError,
    SyncInProgressError,
    SyncStateError,
)
from wallabag_sync.core.lock import PassLock
from wallabag_sync.core.types import Article
from wallabag_sync.output.store import FileSystemNoteStore
from wallabag_sync.runner import LOCK_FILENAME, SyncOrchestrator, run_sync
from wallabag_sync.wallabag.client import WallabagError


class FakeSource:
    def __init__(
        self, articles, authenticated=True, fail_archive=(), export_delay=0.0, fetch_error=None
    ):
        self.articles = list(articles)
        self.fetch_error = fetch_error
        self._authenticated = authenticated
        self.fail_archive = set(fail_archive)
        self.export_delay = export_delay
        self.fetch_calls = []
        self.exported = []
        self.archived = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def authenticated(self):
        return self._authenticated

    async def fetch_articles(self, archived):
        self.fetch_calls.append(archived)
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.articles)

    async def export_article(self, article_id):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.export_delay)
        finally:
            self.in_flight -= 1
        self.exported.append(article_id)
        return f"%PDF-{article_id}".encode()

    async def archive_article(self, article_id):
        if article_id in self.fail_archive:
            raise RuntimeError(f"archive failed for {article_id}")
        self.archived.append(article_id)


class RecordingStore(FileSystemNoteStore):
    def __init__(self, root):
        super().__init__(root)
        self.calls = []
        self.binary_writes = []

    async def exists(self, path):
        self.calls.append(("exists", path))
        return await super().exists(path)

    async def read(self, path):
        self.calls.append(("read", path))
        return await super().read(path)

    async def write(self, path, content):
        self.calls.append(("write", path))
        await super().write(path, content)

    async def write_binary(self, path, data):
        self.calls.append(("write_binary", path))
        self.binary_writes.append(path)
        await super().write_binary(path, data)

    async def create(self, path, content):
        self.calls.append(("create", path))
        await super().create(path, content)


class MemoryNotifier:
    def __init__(self):
        self.notices = []
        self.messages = []

    def notice(self, message):
        self.notices.append(message)

    def begin(self, message):
        self.messages.append(message)
        return self

    def set_message(self, message):
        self.messages.append(message)


def _article(article_id, title, **kwargs):
    return Article(
        id=article_id,
        title=title,
        url=f"https://example.com/{article_id}",
        content=f"<p>Body of {title}</p>",
        **kwargs,
    )


def _config(tmp_path: Path, **notes) -> AppConfig:
    cfg = AppConfig()
    cfg.vault.root = str(tmp_path)
    cfg.logging.file = False
    for key, value in notes.items():
        setattr(cfg.notes, key, value)
    return cfg


def _seed_state(tmp_path: Path, content: str) -> Path:
    path = tmp_path / ".wallabag" / ".synced"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def _state(tmp_path: Path) -> list[int]:
    return json.loads((tmp_path / ".wallabag" / ".synced").read_text(encoding="utf-8"))


def _run(cfg, source, store, notifier=None, logger=None):
    orchestrator = SyncOrchestrator(cfg, source, store, notifier or MemoryNotifier(), logger)
    return asyncio.run(orchestrator.run())


def test_new_article_is_written_and_recorded(tmp_path: Path):
    _seed_state(tmp_path, "[2]")
    source = FakeSource([_article(1, "A/B"), _article(2, "C")])
    notifier = MemoryNotifier()

    result = _run(_config(tmp_path), source, RecordingStore(tmp_path), notifier)

    note = tmp_path / "Wallabag" / "A B.md"
    assert note.exists()
    text = note.read_text(encoding="utf-8")
    assert "## A/B [original](https://example.com/1)" in text
    assert "Body of A/B" in text
    assert not (tmp_path / "Wallabag" / "C.md").exists()
    assert _state(tmp_path) == [1, 2]
    assert result.synced_ids == [1]
    assert result.count == 1
    assert result.stats.fetched == 2
    assert result.stats.new == 1
    assert notifier.messages == [
        "Syncing from Wallabag..",
        "Sync from Wallabag is now completed. 1 new article(s) has been synced.",
    ]


def test_second_pass_is_a_no_op(tmp_path: Path):
    cfg = _config(tmp_path)
    articles = [_article(1, "One"), _article(2, "Two")]
    _run(cfg, FakeSource(articles), RecordingStore(tmp_path))

    store = RecordingStore(tmp_path)
    result = _run(cfg, FakeSource(articles), store)

    assert result.synced_ids == []
    assert not [call for call in store.calls if call[0] == "create"]
    assert sorted(_state(tmp_path)) == [1, 2]


def test_duplicate_ids_in_fetch_are_materialized_once(tmp_path: Path):
    source = FakeSource([_article(5, "Same"), _article(5, "Same")])

    result = _run(_config(tmp_path), source, RecordingStore(tmp_path))

    assert result.synced_ids == [5]
    assert _state(tmp_path) == [5]


def test_existing_note_is_skipped_but_archived_and_recorded(tmp_path: Path):
    existing = tmp_path / "Wallabag" / "Kept.md"
    existing.parent.mkdir(parents=True)
    existing.write_text("hand edited", encoding="utf-8")
    source = FakeSource([_article(3, "Kept")])
    notifier = MemoryNotifier()

    result = _run(_config(tmp_path, archive_after_sync=True), source, RecordingStore(tmp_path), notifier)

    assert existing.read_text(encoding="utf-8") == "hand edited"
    assert notifier.notices == ["File Wallabag/Kept.md already exists. Skipping.."]
    assert source.archived == [3]
    assert _state(tmp_path) == [3]
    assert result.stats.skipped == 1
    assert result.stats.written == 0


def test_pdf_mode_writes_only_the_pdf(tmp_path: Path):
    source = FakeSource([_article(4, "Paper")])
    store = RecordingStore(tmp_path)

    _run(_config(tmp_path, download_as_pdf=True), source, store)

    assert store.binary_writes == ["Wallabag/pdf/Paper.pdf"]
    assert (tmp_path / "Wallabag" / "pdf" / "Paper.pdf").read_bytes() == b"%PDF-4"
    assert not (tmp_path / "Wallabag" / "Paper.md").exists()
    assert source.exported == [4]


def test_pdf_mode_with_companion_note(tmp_path: Path):
    source = FakeSource([_article(4, "Paper", tags=("ml", "papers"))])

    _run(_config(tmp_path, download_as_pdf=True, create_pdf_note=True), source, RecordingStore(tmp_path))

    note = (tmp_path / "Wallabag" / "Paper.md").read_text(encoding="utf-8")
    assert "tags: ml, papers" in note
    assert "![[Wallabag/pdf/Paper.pdf]]" in note
    assert "Body of Paper" not in note


def test_existing_pdf_is_not_exported_again(tmp_path: Path):
    pdf = tmp_path / "Wallabag" / "pdf" / "Paper.pdf"
    pdf.parent.mkdir(parents=True)
    pdf.write_bytes(b"old")
    source = FakeSource([_article(4, "Paper")])

    result = _run(_config(tmp_path, download_as_pdf=True), source, RecordingStore(tmp_path))

    assert source.exported == []
    assert pdf.read_bytes() == b"old"
    assert result.synced_ids == [4]


def test_archiving_is_independent_of_pdf_mode(tmp_path: Path):
    source = FakeSource([_article(1, "One"), _article(2, "Two")])

    _run(_config(tmp_path, archive_after_sync=True, download_as_pdf=True), source, RecordingStore(tmp_path))

    assert sorted(source.archived) == [1, 2]


def test_no_archiving_by_default(tmp_path: Path):
    source = FakeSource([_article(1, "One")])

    _run(_config(tmp_path), source, RecordingStore(tmp_path))

    assert source.archived == []


def test_titles_that_sanitize_to_the_same_name(tmp_path: Path):
    source = FakeSource([_article(1, "A/B"), _article(2, "A?B")])
    notifier = MemoryNotifier()

    result = _run(_config(tmp_path), source, RecordingStore(tmp_path), notifier)

    notes = list((tmp_path / "Wallabag").iterdir())
    assert [p.name for p in notes] == ["A B.md"]
    assert notifier.notices == ["File Wallabag/A B.md already exists. Skipping.."]
    assert sorted(result.synced_ids) == [1, 2]
    assert result.stats.written == 1
    assert result.stats.skipped == 1


def test_id_in_title_keeps_colliding_titles_apart(tmp_path: Path):
    source = FakeSource([_article(1, "A/B"), _article(2, "A?B")])

    _run(_config(tmp_path, id_in_title=True), source, RecordingStore(tmp_path))

    names = sorted(p.name for p in (tmp_path / "Wallabag").iterdir())
    assert names == ["A B-1.md", "A B-2.md"]


def test_partial_failure_records_successes_and_retries_the_rest(tmp_path: Path):
    cfg = _config(tmp_path, archive_after_sync=True)
    articles = [_article(1, "One"), _article(2, "Two"), _article(3, "Three")]
    notifier = MemoryNotifier()

    with pytest.raises(SyncFailedError) as excinfo:
        _run(cfg, FakeSource(articles, fail_archive={2}), RecordingStore(tmp_path), notifier)

    assert [article_id for article_id, _ in excinfo.value.failures] == [2]
    assert excinfo.value.synced == 2
    assert _state(tmp_path) == [1, 3]
    assert notifier.messages[-1] == (
        "Sync from Wallabag failed for 1 article(s). 2 new article(s) has been synced."
    )

    source = FakeSource(articles)
    store = RecordingStore(tmp_path)
    result = _run(cfg, source, store)

    assert result.synced_ids == [2]
    assert source.archived == [2]
    assert _state(tmp_path) == [2, 1, 3]


def test_unauthenticated_pass_touches_nothing(tmp_path: Path):
    source = FakeSource([_article(1, "One")], authenticated=False)
    store = RecordingStore(tmp_path)
    notifier = MemoryNotifier()

    with pytest.raises(NotAuthenticatedError):
        _run(_config(tmp_path), source, store, notifier)

    assert notifier.notices == ["Please authenticate with Wallabag first."]
    assert store.calls == []
    assert source.fetch_calls == []
    assert list(tmp_path.iterdir()) == []


def test_malformed_state_file_aborts_before_fetching(tmp_path: Path):
    _seed_state(tmp_path, '{"ids": [1]}')
    source = FakeSource([_article(1, "One")])

    with pytest.raises(SyncStateError):
        _run(_config(tmp_path), source, RecordingStore(tmp_path))

    assert source.fetch_calls == []
    assert not (tmp_path / "Wallabag").exists()


def test_fetch_selects_unread_or_archived(tmp_path: Path):
    unread = FakeSource([])
    _run(_config(tmp_path), unread, RecordingStore(tmp_path))
    archived = FakeSource([])
    _run(_config(tmp_path, sync_archived=True), archived, RecordingStore(tmp_path))

    assert unread.fetch_calls == [0]
    assert archived.fetch_calls == [1]


def test_user_template_is_used(tmp_path: Path, caplog):
    template = tmp_path / "templates" / "article.md"
    template.parent.mkdir()
    template.write_text("# {{article_title}} ({{id}}) {{unknown}}\n", encoding="utf-8")
    source = FakeSource([_article(9, "Custom")])
    logger = logging.getLogger("tests.runner.template")

    with caplog.at_level(logging.WARNING, logger=logger.name):
        _run(
            _config(tmp_path, article_template="templates/article"),
            source,
            RecordingStore(tmp_path),
            logger=logger,
        )

    note = (tmp_path / "Wallabag" / "Custom.md").read_text(encoding="utf-8")
    assert note == "# Custom (9) {{unknown}}\n"
    assert "templates/article.md has unknown placeholders: unknown" in caplog.text


def test_fetch_failure_aborts_before_any_write(tmp_path: Path):
    state = _seed_state(tmp_path, "[7, 8]")
    source = FakeSource([], fetch_error=WallabagError("GET /api/entries.json failed: offline"))
    store = RecordingStore(tmp_path)

    with pytest.raises(WallabagError, match="offline"):
        _run(_config(tmp_path), source, store)

    assert source.fetch_calls == [0]
    assert not (tmp_path / "Wallabag").exists()
    assert state.read_text(encoding="utf-8") == "[7, 8]"
    assert not [call for call in store.calls if call[0] in {"write", "create", "write_binary"}]


def test_concurrency_is_bounded(tmp_path: Path):
    cfg = _config(tmp_path, download_as_pdf=True)
    cfg.sync.concurrency = 2
    source = FakeSource([_article(i, f"Doc {i}") for i in range(1, 7)], export_delay=0.01)

    result = _run(cfg, source, RecordingStore(tmp_path))

    assert source.max_in_flight <= 2
    assert result.synced_ids == [1, 2, 3, 4, 5, 6]
    assert _state(tmp_path) == [1, 2, 3, 4, 5, 6]


def test_run_sync_rejects_a_concurrent_pass(tmp_path: Path):
    cfg = _config(tmp_path)
    cfg.wallabag.access_token = "token"
    cfg.logging.console = False
    notifier = MemoryNotifier()

    with PassLock(get_state_dir(cfg) / LOCK_FILENAME):
        with pytest.raises(SyncInProgressError):
            run_sync(cfg, notifier=notifier, show_progress=False)

    assert notifier.messages == []
