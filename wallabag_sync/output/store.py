"""
Note storage backed by the vault directory.

The orchestrator only talks to the NoteStore protocol; FileSystemNoteStore
is the implementation used by the CLI. All paths are vault-relative and are
normalized before use.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Protocol
import uuid

from ..core.paths import normalize_path


class NoteStore(Protocol):
    """Asynchronous access to a tree of vault files."""

    async def exists(self, path: str) -> bool: ...

    async def read(self, path: str) -> str: ...

    async def write(self, path: str, content: str) -> None: ...

    async def write_binary(self, path: str, data: bytes) -> None: ...

    async def create(self, path: str, content: str) -> None: ...

    async def remove(self, path: str) -> bool: ...


class FileSystemNoteStore:
    """NoteStore over a directory on the local file system.

    Blocking file operations run in a worker thread so that many articles
    can be materialized concurrently from one event loop.

    Attributes:
        root: The vault root directory
    """

    def __init__(self, root: Path):
        self.root = Path(root).expanduser().resolve()

    def resolve(self, path: str) -> Path:
        """Map a vault-relative path to an absolute path inside the vault.

        Raises:
            ValueError: If the path would escape the vault root
        """
        normalized = normalize_path(path)
        if normalized == "/":
            return self.root
        target = (self.root / normalized).resolve()
        if target != self.root and self.root not in target.parents:
            raise ValueError(f"Path escapes the vault: {path}")
        return target

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).exists)

    async def read(self, path: str) -> str:
        return await asyncio.to_thread(self.resolve(path).read_text, encoding="utf-8")

    async def write(self, path: str, content: str) -> None:
        """Write text, replacing any existing file in one step."""
        await asyncio.to_thread(self._replace, self.resolve(path), content.encode("utf-8"))

    async def write_binary(self, path: str, data: bytes) -> None:
        await asyncio.to_thread(self._replace, self.resolve(path), data)

    async def create(self, path: str, content: str) -> None:
        """Create a new text file.

        Raises:
            FileExistsError: If a file already exists at the path
        """
        await asyncio.to_thread(self._create, self.resolve(path), content)

    async def remove(self, path: str) -> bool:
        """Delete a file. Returns True if a file was removed."""
        return await asyncio.to_thread(self._remove, self.resolve(path))

    @staticmethod
    def _replace(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(f".{target.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            tmp.write_bytes(data)
            os.replace(tmp, target)
        finally:
            if tmp.exists():
                tmp.unlink()

    @staticmethod
    def _create(target: Path, content: str) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("x", encoding="utf-8") as handle:
            handle.write(content)

    @staticmethod
    def _remove(target: Path) -> bool:
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        return True
