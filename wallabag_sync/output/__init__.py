"""Note rendering, vault storage and user notices."""

from .markdown import html_to_markdown
from .notifier import ConsoleNotifier
from .store import FileSystemNoteStore, NoteStore
from .templates import DEFAULT_TEMPLATE, PDF_TEMPLATE, NoteTemplate, format_tags

__all__ = [
    "html_to_markdown",
    "ConsoleNotifier",
    "FileSystemNoteStore",
    "NoteStore",
    "DEFAULT_TEMPLATE",
    "PDF_TEMPLATE",
    "NoteTemplate",
    "format_tags",
]
