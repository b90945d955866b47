"""
HTML to Markdown conversion with fallback strategies.

This module provides a chain of converters:
1. bs4: Walks the BeautifulSoup tree and emits Markdown (default)
2. trafilatura: trafilatura's Markdown output (fallback)
"""

from __future__ import annotations

import re
from typing import Callable

from bs4 import BeautifulSoup, NavigableString, Tag
import trafilatura

_BLANK_LINES_RE = re.compile(r"\n{3,}")
_WHITESPACE_RE = re.compile(r"[ \t\r\n]+")
_SKIP_TAGS = {"script", "style", "noscript", "head", "title", "meta"}
_BLOCK_TAGS = {"p", "div", "section", "article", "header", "footer", "main", "figure", "table", "tr"}


def html_to_markdown(html: str, primary: str = "bs4", fallback: list[str] | None = None) -> str:
    """Convert HTML to Markdown using a chain of converters.

    Tries each converter in order until one produces non-empty output.

    Args:
        html: The HTML content to convert
        primary: Name of the converter to try first
        fallback: Converter names to try if primary fails

    Returns:
        Markdown text, or "" if every converter produced nothing
    """
    if not html or not html.strip():
        return ""
    order = [primary] + [name for name in (fallback or []) if name != primary]
    for method in order:
        converter = _get_converter(method)
        if not converter:
            continue
        text = converter(html)
        if text and text.strip():
            return text.strip()
    return ""


def _get_converter(name: str) -> Callable[[str], str | None] | None:
    if name == "bs4":
        return _convert_bs4
    if name == "trafilatura":
        return _convert_trafilatura
    return None


def _convert_trafilatura(html: str) -> str | None:
    """Convert with trafilatura, which also drops page boilerplate."""
    return trafilatura.extract(
        html,
        output_format="markdown",
        include_formatting=True,
        include_links=True,
        include_images=True,
        favor_recall=True,
    )


def _convert_bs4(html: str) -> str | None:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(list(_SKIP_TAGS)):
        tag.decompose()
    text = _render_children(soup)
    text = "\n".join(line.rstrip() for line in text.splitlines())
    text = _BLANK_LINES_RE.sub("\n\n", text).strip()
    return text or None


def _render_children(node: Tag) -> str:
    return "".join(_render(child) for child in node.children)


def _render(node) -> str:
    if isinstance(node, NavigableString):
        if type(node) is not NavigableString:
            # comments, doctypes, CDATA
            return ""
        return _WHITESPACE_RE.sub(" ", str(node))
    if not isinstance(node, Tag):
        return ""

    name = node.name
    if name in {"h1", "h2", "h3", "h4", "h5", "h6"}:
        level = int(name[1])
        return f"\n\n{'#' * level} {_inline(node)}\n\n"
    if name in _BLOCK_TAGS:
        return f"\n\n{_render_children(node).strip()}\n\n"
    if name == "br":
        return "\n"
    if name == "hr":
        return "\n\n---\n\n"
    if name in {"strong", "b"}:
        return _wrap(node, "**")
    if name in {"em", "i"}:
        return _wrap(node, "*")
    if name in {"del", "s", "strike"}:
        return _wrap(node, "~~")
    if name == "code":
        return f"`{node.get_text()}`"
    if name == "pre":
        return f"\n\n```\n{node.get_text().strip(chr(10))}\n```\n\n"
    if name == "a":
        label = _inline(node)
        href = node.get("href")
        if not href:
            return label
        return f"[{label or href}]({href})"
    if name == "img":
        src = node.get("src")
        if not src:
            return ""
        return f"![{node.get('alt', '')}]({src})"
    if name in {"ul", "ol"}:
        return f"\n\n{_render_list(node, depth=0)}\n\n"
    if name == "blockquote":
        inner = _render_children(node).strip()
        quoted = "\n".join(f"> {line}" if line else ">" for line in inner.splitlines())
        return f"\n\n{quoted}\n\n"
    if name in {"td", "th"}:
        return f"{_inline(node)} "
    return _render_children(node)


def _render_list(node: Tag, depth: int) -> str:
    lines = []
    ordered = node.name == "ol"
    index = 1
    for child in node.find_all("li", recursive=False):
        marker = f"{index}." if ordered else "-"
        index += 1
        nested = []
        parts = []
        for sub in child.children:
            if isinstance(sub, Tag) and sub.name in {"ul", "ol"}:
                nested.append(_render_list(sub, depth + 1))
            else:
                parts.append(_render(sub))
        text = _WHITESPACE_RE.sub(" ", "".join(parts)).strip()
        lines.append(f"{'  ' * depth}{marker} {text}")
        lines.extend(nested)
    return "\n".join(lines)


def _inline(node: Tag) -> str:
    return _WHITESPACE_RE.sub(" ", _render_children(node)).strip()


def _wrap(node: Tag, marker: str) -> str:
    text = _inline(node)
    if not text:
        return ""
    return f"{marker}{text}{marker}"
