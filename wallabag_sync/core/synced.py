"""
Persistence of the set of already-synced article ids.

The state file is a JSON array of integer ids stored in the vault's private
state directory. It has no version field and is always replaced wholesale.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

from ..output.store import NoteStore
from .errors import SyncStateError


class SyncedStore:
    """Reads and writes the synced-ids file through a NoteStore.

    Attributes:
        path: Vault-relative path of the state file
    """

    def __init__(self, store: NoteStore, path: str):
        self._store = store
        self.path = path

    async def load(self) -> list[int]:
        """Load previously synced ids.

        A missing file is treated as an empty set.

        Raises:
            SyncStateError: If the file is not a JSON array of integers
        """
        if not await self._store.exists(self.path):
            return []
        raw = await self._store.read(self.path)
        return parse_synced(raw, self.path)

    async def save(self, ids: Iterable[int]) -> None:
        """Replace the state file with the given ids, dropping duplicates."""
        await self._store.write(self.path, json.dumps(_unique(ids)))

    async def clear(self) -> bool:
        """Delete the state file. Returns True if it existed."""
        return await self._store.remove(self.path)


def parse_synced(raw: str, path: str = ".synced") -> list[int]:
    """Parse the contents of a synced-ids file.

    Raises:
        SyncStateError: If the content is not a JSON array of integers
    """
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SyncStateError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise SyncStateError(f"{path} must contain a JSON array of article ids")
    for value in data:
        # bool is a subclass of int
        if isinstance(value, bool) or not isinstance(value, int):
            raise SyncStateError(f"{path} contains a non-integer id: {value!r}")
    return _unique(data)


def _unique(ids: Iterable[int]) -> list[int]:
    seen: set[int] = set()
    result = []
    for article_id in ids:
        if article_id not in seen:
            seen.add(article_id)
            result.append(article_id)
    return result
