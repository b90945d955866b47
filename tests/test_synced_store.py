"""Tests for the synced-ids state file."""

import asyncio
import json
from pathlib import Path

import pytest

from wallabag_sync.core.errors import SyncStateError
from wallabag_sync.core.synced import SyncedStore, parse_synced
from wallabag_sync.output.store import FileSystemNoteStore


def _store(root: Path) -> SyncedStore:
    return SyncedStore(FileSystemNoteStore(root), ".wallabag/.synced")


def test_missing_file_is_empty_set(tmp_path: Path):
    assert asyncio.run(_store(tmp_path).load()) == []


def test_save_then_load(tmp_path: Path):
    store = _store(tmp_path)
    asyncio.run(store.save([3, 1, 3, 2]))

    assert json.loads((tmp_path / ".wallabag" / ".synced").read_text()) == [3, 1, 2]
    assert asyncio.run(store.load()) == [3, 1, 2]


def test_clear(tmp_path: Path):
    store = _store(tmp_path)
    asyncio.run(store.save([1]))

    assert asyncio.run(store.clear()) is True
    assert asyncio.run(store.clear()) is False
    assert asyncio.run(store.load()) == []


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        '{"ids": [1, 2]}',
        '[1, "2"]',
        "[1, true]",
        "[1.5]",
        "null",
    ],
)
def test_malformed_content_raises(raw: str):
    with pytest.raises(SyncStateError):
        parse_synced(raw)


def test_malformed_file_raises_on_load(tmp_path: Path):
    state = tmp_path / ".wallabag" / ".synced"
    state.parent.mkdir()
    state.write_text("garbage", encoding="utf-8")

    with pytest.raises(SyncStateError):
        asyncio.run(_store(tmp_path).load())
