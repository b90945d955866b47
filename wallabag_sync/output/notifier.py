"""User-facing status notices printed with rich."""

from __future__ import annotations

from typing import Protocol

from rich.console import Console
from rich.status import Status


class NoticeHandle(Protocol):
    def set_message(self, message: str) -> None: ...


class Notifier(Protocol):
    """Transient status messages shown to the user during a pass."""

    def notice(self, message: str) -> None: ...

    def begin(self, message: str) -> NoticeHandle: ...


class ConsoleNotice:
    """A persistent notice shown as a spinner until its final message is set."""

    def __init__(self, console: Console, message: str, live: bool = True):
        self._console = console
        self._status: Status | None = None
        if live:
            self._status = console.status(message)
            self._status.start()
        else:
            console.print(message)

    def set_message(self, message: str) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
        self._console.print(message)

    def close(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None


class ConsoleNotifier:
    """Notifier writing to a rich Console.

    Attributes:
        console: Console used for output
        live: Show an animated spinner for persistent notices
    """

    def __init__(self, console: Console | None = None, live: bool = True):
        self.console = console or Console()
        self.live = live
        self._open: list[ConsoleNotice] = []

    def notice(self, message: str) -> None:
        self.console.print(message, markup=False, highlight=False)

    def begin(self, message: str) -> ConsoleNotice:
        handle = ConsoleNotice(self.console, message, live=self.live)
        self._open.append(handle)
        return handle

    def close(self) -> None:
        """Stop any spinner still running, e.g. after a failed pass."""
        for handle in self._open:
            handle.close()
        self._open.clear()
