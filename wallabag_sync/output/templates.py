"""
Note templates and placeholder substitution.

Templates are plain text with ``{{placeholder}}`` tokens. Rendering is
string substitution only: recognized placeholders are replaced with article
fields and anything else is left untouched.
"""

from __future__ import annotations

import re
from typing import Callable

from ..core.types import Article
from .markdown import html_to_markdown

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")

TAG_FORMATS = ("csv", "hashtag")

PLACEHOLDERS = frozenset(
    {
        "id",
        "article_title",
        "original_link",
        "wallabag_link",
        "content",
        "tags",
        "created_at",
        "updated_at",
        "archived_at",
        "published_at",
        "published_by",
        "reading_time",
        "domain_name",
        "preview_picture",
        "is_starred",
        "is_archived",
        "annotations",
        "pdf_link",
    }
)

_DEFAULT_TEXT = """---
tags: {{tags}}
---
## {{article_title}} [original]({{original_link}}), [wallabag]({{wallabag_link}})
{{content}}
"""

_PDF_TEXT = """---
tags: {{tags}}
---
## {{article_title}} [original]({{original_link}}), [wallabag]({{wallabag_link}})
![[{{pdf_link}}]]
"""


def format_tags(tags: tuple[str, ...] | list[str], tag_format: str) -> str:
    """Format tag labels for a note.

    Args:
        tags: Tag labels in server order
        tag_format: "csv" for "a, b" or "hashtag" for "#a #b"

    Raises:
        ValueError: If tag_format is not supported
    """
    if tag_format == "csv":
        return ", ".join(tags)
    if tag_format == "hashtag":
        return " ".join(f"#{tag.strip().replace(' ', '_')}" for tag in tags)
    raise ValueError(f"Unsupported tag format: {tag_format}. Use 'csv' or 'hashtag'.")


def format_annotations(article: Article) -> str:
    blocks = []
    for annotation in article.annotations:
        lines = [f"> {line}" for line in annotation.quote.splitlines() if line.strip()]
        if annotation.text:
            lines.append("")
            lines.append(annotation.text)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


class NoteTemplate:
    """A note template that can be filled with an article's fields."""

    def __init__(self, text: str):
        self.text = text

    def placeholders(self) -> set[str]:
        return {match.group(1) for match in PLACEHOLDER_RE.finditer(self.text)}

    def unknown_placeholders(self) -> set[str]:
        """Placeholder names that fill() leaves in the text as written."""
        return self.placeholders() - PLACEHOLDERS

    def fill(
        self,
        article: Article,
        server_url: str,
        convert_html: bool = True,
        tag_format: str = "csv",
        pdf_link: str | None = None,
        converter: Callable[[str], str] = html_to_markdown,
    ) -> str:
        """Render the template for an article.

        Args:
            article: The article to render
            server_url: Wallabag server URL, used for the wallabag_link placeholder
            convert_html: Convert the article HTML to Markdown for {{content}}
            tag_format: Tag formatting ("csv" or "hashtag")
            pdf_link: Vault path of the exported PDF, if any
            converter: HTML to Markdown conversion function

        Returns:
            The rendered note text
        """
        values: dict[str, Callable[[], str]] = {
            "id": lambda: str(article.id),
            "article_title": lambda: article.title,
            "original_link": lambda: article.url,
            "wallabag_link": lambda: f"{server_url.rstrip('/')}/view/{article.id}",
            "content": lambda: converter(article.content) if convert_html else article.content,
            "tags": lambda: format_tags(article.tags, tag_format),
            "created_at": lambda: article.created_at or "",
            "updated_at": lambda: article.updated_at or "",
            "archived_at": lambda: article.archived_at or "",
            "published_at": lambda: article.published_at or "",
            "published_by": lambda: ", ".join(article.published_by),
            "reading_time": lambda: "" if article.reading_time is None else str(article.reading_time),
            "domain_name": lambda: article.domain_name or "",
            "preview_picture": lambda: article.preview_picture or "",
            "is_starred": lambda: str(article.is_starred).lower(),
            "is_archived": lambda: str(article.is_archived).lower(),
            "annotations": lambda: format_annotations(article),
            "pdf_link": lambda: pdf_link or "",
        }
        cache: dict[str, str] = {}

        def _substitute(match: re.Match[str]) -> str:
            name = match.group(1)
            if name not in values:
                return match.group(0)
            if name not in cache:
                cache[name] = values[name]()
            return cache[name]

        return PLACEHOLDER_RE.sub(_substitute, self.text)


DEFAULT_TEMPLATE = NoteTemplate(_DEFAULT_TEXT)
PDF_TEMPLATE = NoteTemplate(_PDF_TEXT)
