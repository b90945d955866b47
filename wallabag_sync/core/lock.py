"""Lock file that keeps two sync passes from running against one vault."""

from __future__ import annotations

import os
from pathlib import Path

from .errors import SyncInProgressError


class PassLock:
    """Exclusive lock held for the duration of a pass.

    The lock file contains the PID of the holder. A lock left behind by a
    process that no longer exists is considered stale and is taken over.

    Usage:
        with PassLock(state_dir / ".sync.lock"):
            ...
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._held = False

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            SyncInProgressError: If a live process holds the lock
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        for _ in range(2):
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                holder = self._holder_pid()
                if holder is not None and _pid_alive(holder):
                    raise SyncInProgressError(
                        f"A sync is already running (pid {holder}, lock {self.path})"
                    ) from None
                self.path.unlink(missing_ok=True)
                continue
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(str(os.getpid()))
            self._held = True
            return
        raise SyncInProgressError(f"Could not acquire sync lock {self.path}")

    def release(self) -> None:
        if self._held:
            self.path.unlink(missing_ok=True)
            self._held = False

    def __enter__(self) -> "PassLock":
        self.acquire()
        return self

    def __exit__(self, *args: object) -> None:
        self.release()

    def _holder_pid(self) -> int | None:
        try:
            return int(self.path.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            return None


def _pid_alive(pid: int) -> bool:
    if pid == os.getpid():
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True
