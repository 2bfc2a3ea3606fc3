"""Unit tests for newsbrief.fetchers.feeds."""

from __future__ import annotations

import feedparser
import httpx
import pytest
import respx

from newsbrief.config import FetcherSettings, SourceSettings
from newsbrief.errors import ErrorCode, FetchError
from newsbrief.fetchers.feeds import FeedFetcher, build_http_client, condense
from newsbrief.render import MarkdownRenderer

ALPHA = SourceSettings(name="Alpha", url="https://alpha.example/feed.xml")
BETA = SourceSettings(name="Beta", url="https://beta.example/rss")


def _rss(*items: tuple[str, str, str]) -> str:
    body = "".join(
        f"<item><title>{title}</title><link>{link}</link>"
        f"<description>{description}</description></item>"
        for title, link, description in items
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"><channel><title>Feed</title>{body}</channel></rss>'
    )


ALPHA_FEED = _rss(
    ("Rates held", "https://alpha.example/1", "The central bank kept rates unchanged."),
    (
        "Oil climbs",
        "https://alpha.example/2",
        "&lt;p&gt;Brent rose &lt;b&gt;3%&lt;/b&gt; on supply cuts&lt;/p&gt;",
    ),
)
BETA_FEED = _rss(
    ("Chip exports slow", "https://beta.example/a", "Shipments fell for a second month."),
    ("rates HELD", "https://beta.example/b", "Same story, other outlet."),
)


# ---------------------------------------------------------------------------
# condense
# ---------------------------------------------------------------------------


class TestCondense:
    def test_strips_tags_and_entities(self) -> None:
        assert condense("<p>Tom &amp; Jerry</p>", 100) == "Tom & Jerry"

    def test_collapses_whitespace(self) -> None:
        assert condense("a \n\n  b\tc", 100) == "a b c"

    def test_short_text_unchanged(self) -> None:
        assert condense("Short.", 100) == "Short."

    def test_truncates_on_word_boundary(self) -> None:
        result = condense("one two three four five", 12)
        assert result == "one two…"

    def test_single_long_word_is_cut(self) -> None:
        assert condense("x" * 50, 10) == "x" * 10 + "…"


# ---------------------------------------------------------------------------
# build_http_client
# ---------------------------------------------------------------------------


class TestBuildHttpClient:
    async def test_client_configuration(self) -> None:
        settings = FetcherSettings(user_agent="newsbrief-test", source_timeout_seconds=4)
        client = build_http_client(settings)
        try:
            assert isinstance(client, httpx.AsyncClient)
            assert client.follow_redirects is True
            assert client.headers["User-Agent"] == "newsbrief-test"
            assert client.timeout.read == 4
        finally:
            await client.aclose()


# ---------------------------------------------------------------------------
# FeedFetcher
# ---------------------------------------------------------------------------


class TestFeedFetcher:
    async def test_combines_sources_in_order(self) -> None:
        with respx.mock:
            respx.get("https://alpha.example/feed.xml").mock(
                return_value=httpx.Response(200, text=ALPHA_FEED)
            )
            respx.get("https://beta.example/rss").mock(
                return_value=httpx.Response(200, text=BETA_FEED)
            )
            async with httpx.AsyncClient() as client:
                fetcher = FeedFetcher(client, [ALPHA, BETA])
                content = await fetcher.fetch()

        assert content.index("## Alpha") < content.index("## Beta")
        assert (
            "- **[Rates held](https://alpha.example/1)**: The central bank kept rates unchanged."
            in content
        )
        assert "Brent rose 3% on supply cuts" in content
        assert "<b>" not in content
        assert fetcher.last_failures == []

    async def test_duplicate_titles_dropped_across_sources(self) -> None:
        with respx.mock:
            respx.get("https://alpha.example/feed.xml").mock(
                return_value=httpx.Response(200, text=ALPHA_FEED)
            )
            respx.get("https://beta.example/rss").mock(
                return_value=httpx.Response(200, text=BETA_FEED)
            )
            async with httpx.AsyncClient() as client:
                content = await FeedFetcher(client, [ALPHA, BETA]).fetch()

        assert "rates HELD" not in content
        assert "Chip exports slow" in content

    async def test_max_items_per_source(self) -> None:
        feed = _rss(*[(f"Story {i}", f"https://alpha.example/{i}", "") for i in range(10)])
        with respx.mock:
            respx.get("https://alpha.example/feed.xml").mock(
                return_value=httpx.Response(200, text=feed)
            )
            async with httpx.AsyncClient() as client:
                content = await FeedFetcher(client, [ALPHA], max_items=3).fetch()

        assert content.count("\n- ") == 3
        assert "Story 2" in content
        assert "Story 3" not in content

    async def test_partial_failure_folded_into_content(self) -> None:
        with respx.mock:
            respx.get("https://alpha.example/feed.xml").mock(
                return_value=httpx.Response(200, text=ALPHA_FEED)
            )
            respx.get("https://beta.example/rss").mock(return_value=httpx.Response(503))
            async with httpx.AsyncClient() as client:
                fetcher = FeedFetcher(client, [ALPHA, BETA])
                content = await fetcher.fetch()

        assert "Rates held" in content
        assert '> Source "Beta" failed: HTTP 503' in content
        assert len(fetcher.last_failures) == 1
        assert fetcher.last_failures[0].source == "Beta"
        assert fetcher.last_failures[0].code == ErrorCode.SOURCE_HTTP_ERROR

    async def test_all_sources_failed_raises(self) -> None:
        with respx.mock:
            respx.get("https://alpha.example/feed.xml").mock(return_value=httpx.Response(500))
            respx.get("https://beta.example/rss").mock(
                side_effect=httpx.ConnectError("Connection refused")
            )
            async with httpx.AsyncClient() as client:
                fetcher = FeedFetcher(client, [ALPHA, BETA])
                with pytest.raises(FetchError) as exc_info:
                    await fetcher.fetch()

        assert exc_info.value.code == ErrorCode.ALL_SOURCES_FAILED
        assert "Alpha: HTTP 500" in exc_info.value.message
        assert "Beta: Connection refused" in exc_info.value.message
        codes = {f.source: f.code for f in fetcher.last_failures}
        assert codes == {
            "Alpha": ErrorCode.SOURCE_HTTP_ERROR,
            "Beta": ErrorCode.SOURCE_UNREACHABLE,
        }

    async def test_timeout_is_a_source_failure(self) -> None:
        with respx.mock:
            respx.get("https://alpha.example/feed.xml").mock(
                side_effect=httpx.ReadTimeout("read timed out")
            )
            respx.get("https://beta.example/rss").mock(
                return_value=httpx.Response(200, text=BETA_FEED)
            )
            async with httpx.AsyncClient() as client:
                fetcher = FeedFetcher(client, [ALPHA, BETA], timeout=2)
                content = await fetcher.fetch()

        assert '> Source "Alpha" failed: timed out after 2s' in content
        assert fetcher.last_failures[0].code == ErrorCode.SOURCE_TIMEOUT

    async def test_unreadable_feed(self) -> None:
        with respx.mock:
            respx.get("https://alpha.example/feed.xml").mock(
                return_value=httpx.Response(200, text="this is not a feed")
            )
            async with httpx.AsyncClient() as client:
                fetcher = FeedFetcher(client, [ALPHA])
                with pytest.raises(FetchError):
                    await fetcher.fetch()

        assert fetcher.last_failures[0].code == ErrorCode.SOURCE_PARSE_ERROR

    async def test_entry_without_http_link_rendered_as_plain_title(self) -> None:
        feed = _rss(("Local note", "ftp://alpha.example/x", "Body"))
        with respx.mock:
            respx.get("https://alpha.example/feed.xml").mock(
                return_value=httpx.Response(200, text=feed)
            )
            async with httpx.AsyncClient() as client:
                content = await FeedFetcher(client, [ALPHA]).fetch()

        assert "- **Local note**: Body" in content

    async def test_parenthesised_link_survives_rendering(self) -> None:
        feed = _rss(("Foo", "https://en.wikipedia.org/wiki/Foo_(bar)", "Body"))
        with respx.mock:
            respx.get("https://alpha.example/feed.xml").mock(
                return_value=httpx.Response(200, text=feed)
            )
            async with httpx.AsyncClient() as client:
                content = await FeedFetcher(client, [ALPHA]).fetch()

        html = MarkdownRenderer().render(content)
        assert 'href="https://en.wikipedia.org/wiki/Foo_%28bar%29"' in html
        assert "</a>)" not in html

    async def test_parser_crash_only_fails_that_source(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        real_parse = feedparser.parse

        def parse(content: bytes):
            if b"alpha.example" in content:
                raise ValueError("parser exploded")
            return real_parse(content)

        monkeypatch.setattr(feedparser, "parse", parse)
        with respx.mock:
            respx.get("https://alpha.example/feed.xml").mock(
                return_value=httpx.Response(200, text=ALPHA_FEED)
            )
            respx.get("https://beta.example/rss").mock(
                return_value=httpx.Response(200, text=BETA_FEED)
            )
            async with httpx.AsyncClient() as client:
                fetcher = FeedFetcher(client, [ALPHA, BETA])
                content = await fetcher.fetch()

        assert "Chip exports slow" in content
        assert '> Source "Alpha" failed: ValueError: parser exploded' in content
        assert fetcher.last_failures[0].code == ErrorCode.SOURCE_PARSE_ERROR

    async def test_no_sources_configured(self) -> None:
        async with httpx.AsyncClient() as client:
            with pytest.raises(FetchError) as exc_info:
                await FeedFetcher(client, []).fetch()
        assert exc_info.value.code == ErrorCode.ALL_SOURCES_FAILED
        assert exc_info.value.recoverable is False

    async def test_aclose_closes_client(self) -> None:
        client = httpx.AsyncClient()
        fetcher = FeedFetcher(client, [ALPHA])
        await fetcher.aclose()
        assert client.is_closed

    def test_from_settings(self) -> None:
        settings = FetcherSettings(
            sources=[ALPHA], source_timeout_seconds=3, max_items_per_source=2, summary_chars=50
        )
        fetcher = FeedFetcher.from_settings(httpx.AsyncClient(), settings)
        assert fetcher._timeout == 3
        assert fetcher._max_items == 2
        assert fetcher._summary_chars == 50
        assert [s.name for s in fetcher._sources] == ["Alpha"]
