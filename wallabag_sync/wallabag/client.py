"""Wallabag API client."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ..core.errors import WallabagSyncError
from ..core.types import Annotation, Article

logger = logging.getLogger(__name__)


class WallabagError(WallabagSyncError):
    """Base exception for Wallabag API errors."""


class WallabagAuthError(WallabagError):
    """Authentication failed."""


class WallabagRateLimitError(WallabagError):
    """Rate limit exceeded after all retries."""


class WallabagClient:
    """Async client for the Wallabag REST API.

    Authentication is a bearer access token obtained elsewhere; the client
    never exchanges credentials itself.
    """

    def __init__(
        self,
        server_url: str,
        token: str | None,
        *,
        timeout: float = 30.0,
        retries: int = 2,
        per_page: int = 30,
        trust_env: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.server_url = server_url.rstrip("/")
        self._token = token
        self._retries = retries
        self._per_page = per_page
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self.server_url,
            headers=headers,
            timeout=timeout,
            trust_env=trust_env,
            transport=transport,
        )

    @property
    def authenticated(self) -> bool:
        return bool(self._token)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "WallabagClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        max_delay: float = 60.0,
    ) -> httpx.Response:
        """Make an HTTP request, backing off and retrying on 429.

        Args:
            method: HTTP method (GET, PATCH, ...)
            url: URL path relative to the server URL
            params: Query parameters
            data: Form body
            max_delay: Maximum delay between retries

        Returns:
            httpx.Response on success

        Raises:
            WallabagAuthError: If the token is rejected
            WallabagRateLimitError: If still rate limited after all retries
            WallabagError: For any other non-success status or a transport failure
        """
        delay = 1.0

        for attempt in range(self._retries + 1):
            try:
                resp = await self._client.request(method, url, params=params, data=data)
            except httpx.HTTPError as exc:
                raise WallabagError(f"{method} {url} failed: {exc}") from exc

            if resp.status_code == 401:
                raise WallabagAuthError("Wallabag rejected the access token")

            if resp.status_code == 429:
                if attempt == self._retries:
                    raise WallabagRateLimitError(
                        f"Rate limit exceeded after {self._retries} retries"
                    )
                retry_after = resp.headers.get("Retry-After")
                try:
                    wait_time = float(retry_after) if retry_after else delay
                except ValueError:
                    wait_time = delay
                wait_time = min(wait_time, max_delay)
                logger.warning(
                    f"Rate limited (429). Waiting {wait_time:.1f}s "
                    f"(attempt {attempt + 1}/{self._retries + 1})"
                )
                await asyncio.sleep(wait_time)
                delay = min(delay * 2, max_delay)
                continue

            if resp.is_error:
                raise WallabagError(
                    f"{method} {url} failed: HTTP {resp.status_code} {resp.text[:200]}"
                )
            return resp

        raise WallabagRateLimitError("Rate limit handling failed")

    async def fetch_articles(self, archived: int) -> list[Article]:
        """Fetch all entries with the given archive state.

        Args:
            archived: 1 for archived entries only, 0 for unread entries only

        Returns:
            Articles in the order the server returns them, across all pages
        """
        articles: list[Article] = []
        page = 1

        while True:
            resp = await self._request(
                "GET",
                "/api/entries.json",
                params={
                    "archive": archived,
                    "page": page,
                    "perPage": self._per_page,
                    "detail": "full",
                },
            )
            try:
                data = resp.json()
            except ValueError as exc:
                raise WallabagError(f"Unexpected response listing entries: {exc}") from exc
            items = data.get("_embedded", {}).get("items", [])
            articles.extend(parse_article(item) for item in items)

            pages = int(data.get("pages") or 1)
            if page >= pages or not items:
                break
            page += 1

        logger.debug(f"Fetched {len(articles)} entries (archive={archived})")
        return articles

    async def export_article(self, article_id: int) -> bytes:
        """Download the server-side PDF export of an entry."""
        resp = await self._request("GET", f"/api/entries/{article_id}/export.pdf")
        return resp.content

    async def archive_article(self, article_id: int) -> None:
        """Mark an entry as archived on the server."""
        await self._request("PATCH", f"/api/entries/{article_id}.json", data={"archive": 1})


def parse_article(doc: dict[str, Any]) -> Article:
    """Convert a Wallabag entry payload to an Article."""
    tags = tuple(
        tag.get("label", "") if isinstance(tag, dict) else str(tag)
        for tag in doc.get("tags") or []
    )
    annotations = tuple(
        Annotation(
            text=item.get("text") or "",
            quote=item.get("quote") or "",
            created_at=item.get("created_at"),
        )
        for item in doc.get("annotations") or []
    )
    reading_time = doc.get("reading_time")

    return Article(
        id=int(doc["id"]),
        title=doc.get("title") or "Untitled",
        url=doc.get("url") or doc.get("given_url") or "",
        content=doc.get("content") or "",
        tags=tuple(tag for tag in tags if tag),
        is_archived=bool(doc.get("is_archived")),
        is_starred=bool(doc.get("is_starred")),
        created_at=doc.get("created_at"),
        updated_at=doc.get("updated_at"),
        archived_at=doc.get("archived_at"),
        published_at=doc.get("published_at"),
        published_by=tuple(doc.get("published_by") or ()),
        reading_time=int(reading_time) if reading_time is not None else None,
        domain_name=doc.get("domain_name"),
        preview_picture=doc.get("preview_picture"),
        annotations=annotations,
    )
