"""Concurrent RSS/Atom fetcher.

All configured sources are requested at once through one shared
``httpx.AsyncClient``; each request is bounded by its own timeout so a hung
source only costs that timeout. Each feed is condensed to its first few
stories and the result is returned as Markdown, one section per source.

A source that fails is reported inside the content as a visible note; the
fetch as a whole only fails when no source produced anything.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from html import unescape
from typing import TYPE_CHECKING, Sequence

import feedparser
import httpx
import structlog

from newsbrief.errors import ErrorCode, FetchError, SourceFailure
from newsbrief.models.feed import FeedItem

if TYPE_CHECKING:
    from newsbrief.config import FetcherSettings, SourceSettings

log = structlog.get_logger()

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def build_http_client(settings: FetcherSettings) -> httpx.AsyncClient:
    """Return the shared client used for every feed request."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(settings.source_timeout_seconds),
        headers={"User-Agent": settings.user_agent},
    )


def condense(text: str, limit: int) -> str:
    """Strip markup from ``text`` and cut it to ``limit`` chars on a word boundary."""
    text = _WS_RE.sub(" ", unescape(_TAG_RE.sub(" ", text))).strip()
    if len(text) <= limit:
        return text
    cut = text[:limit]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,.;:-") + "…"


def _clean_link(link: str) -> str | None:
    link = link.strip()
    if not link.startswith(("http://", "https://")):
        return None
    return link.replace(" ", "%20").replace("(", "%28").replace(")", "%29")


def _clean_title(title: str) -> str:
    # Square brackets would break the link syntax around the title.
    title = condense(title, 300)
    return title.replace("[", "(").replace("]", ")")


@dataclass
class _SourceResult:
    name: str
    items: list[FeedItem] = field(default_factory=list)
    failure: SourceFailure | None = None


class FeedFetcher:
    def __init__(
        self,
        client: httpx.AsyncClient,
        sources: Sequence[SourceSettings],
        *,
        timeout: float = 10.0,
        max_items: int = 5,
        summary_chars: int = 280,
    ) -> None:
        self._client = client
        self._sources = list(sources)
        self._timeout = timeout
        self._max_items = max_items
        self._summary_chars = summary_chars
        self.last_failures: list[SourceFailure] = []

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: FetcherSettings) -> FeedFetcher:
        return cls(
            client,
            settings.sources,
            timeout=settings.source_timeout_seconds,
            max_items=settings.max_items_per_source,
            summary_chars=settings.summary_chars,
        )

    async def fetch(self) -> str:
        if not self._sources:
            raise FetchError(
                ErrorCode.ALL_SOURCES_FAILED, "No sources configured", recoverable=False
            )

        results = await asyncio.gather(*(self._fetch_source(s) for s in self._sources))
        failures = [r.failure for r in results if r.failure is not None]
        self.last_failures = failures

        if len(failures) == len(results):
            summary = "; ".join(f"{f.source}: {f.message}" for f in failures)
            raise FetchError(ErrorCode.ALL_SOURCES_FAILED, f"All sources failed ({summary})")

        if failures:
            log.warning(
                "feed_partial_failure",
                failed=[f.source for f in failures],
                succeeded=len(results) - len(failures),
            )
        return self._compose(results)

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Per source
    # ------------------------------------------------------------------

    async def _fetch_source(self, source: SourceSettings) -> _SourceResult:
        url = str(source.url)
        try:
            response = await asyncio.wait_for(self._client.get(url), timeout=self._timeout)
        except (TimeoutError, httpx.TimeoutException):
            return self._failed(
                source, ErrorCode.SOURCE_TIMEOUT, f"timed out after {self._timeout:g}s"
            )
        except httpx.HTTPError as exc:
            message = str(exc) or type(exc).__name__
            return self._failed(source, ErrorCode.SOURCE_UNREACHABLE, message)

        if response.status_code >= 400:
            message = f"HTTP {response.status_code}"
            return self._failed(source, ErrorCode.SOURCE_HTTP_ERROR, message)

        try:
            return await self._parse(source, response.content)
        except Exception as exc:
            message = f"{type(exc).__name__}: {exc}"
            return self._failed(source, ErrorCode.SOURCE_PARSE_ERROR, message, exc_info=True)

    async def _parse(self, source: SourceSettings, content: bytes) -> _SourceResult:
        parsed = await asyncio.to_thread(feedparser.parse, content)
        entries = parsed.get("entries") or []
        if not entries:
            reason = parsed.get("bozo_exception") if parsed.get("bozo") else None
            message = f"unreadable feed: {reason}" if reason else "feed has no entries"
            return self._failed(source, ErrorCode.SOURCE_PARSE_ERROR, message)

        items: list[FeedItem] = []
        for entry in entries:
            title = _clean_title(entry.get("title") or "")
            if not title:
                continue
            items.append(
                FeedItem(
                    source=source.name,
                    title=title,
                    link=_clean_link(entry.get("link") or ""),
                    summary=condense(
                        entry.get("summary") or entry.get("description") or "",
                        self._summary_chars,
                    ),
                )
            )
            if len(items) >= self._max_items:
                break

        log.debug("feed_fetched", source=source.name, items=len(items))
        return _SourceResult(source.name, items=items)

    def _failed(
        self, source: SourceSettings, code: ErrorCode, message: str, *, exc_info: bool = False
    ) -> _SourceResult:
        log.warning(
            "feed_source_failed",
            source=source.name,
            code=code.value,
            error=message,
            exc_info=exc_info,
        )
        failure = SourceFailure(source=source.name, code=code, message=message)
        return _SourceResult(source.name, failure=failure)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _compose(self, results: list[_SourceResult]) -> str:
        seen: set[str] = set()
        sections: list[str] = []
        for result in results:
            lines = [f"## {result.name}", ""]
            if result.failure is not None:
                lines.append(f'> Source "{result.name}" failed: {result.failure.message}')
                sections.append("\n".join(lines))
                continue

            fresh: list[FeedItem] = []
            for item in result.items:
                key = item.title.casefold()
                if key not in seen:
                    seen.add(key)
                    fresh.append(item)
            if not fresh:
                lines.append("_No new stories._")
            for item in fresh:
                title = f"[{item.title}]({item.link})" if item.link else item.title
                line = f"- **{title}**"
                if item.summary:
                    line += f": {item.summary}"
                lines.append(line)
            sections.append("\n".join(lines))
        return "\n\n".join(sections) + "\n"
