"""Raw text to HTML markup.

Fetchers produce Markdown: the feed fetcher builds it itself and the command
pipeline asks the model for headings followed by short paragraphs. Renderers
are pure and total; every piece of input text is HTML-escaped.
"""

from __future__ import annotations

import re
from html import escape
from typing import Protocol, runtime_checkable


@runtime_checkable
class Renderer(Protocol):
    def render(self, raw: str) -> str: ...


_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_BULLET_RE = re.compile(r"^\s*[-*+]\s+(.*)$")
_QUOTE_RE = re.compile(r"^\s*>\s?(.*)$")

_CODE_RE = re.compile(r"`([^`\n]+)`")
_LINK_RE = re.compile(r"\[([^\]\n]+)\]\((https?://(?:[^\s()\x00]|\([^\s()\x00]*\))+)\)")
_BOLD_RE = re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*")
_EM_STAR_RE = re.compile(r"(?<![\w*])\*(?=[^\s*])(.+?)(?<=[^\s*])\*(?![\w*])")
_EM_UNDERSCORE_RE = re.compile(r"(?<!\w)_(?=\S)(.+?)(?<=\S)_(?!\w)")
_STASH_RE = re.compile(r"\x00(\d+)\x00")


def _emphasis(escaped: str) -> str:
    escaped = _BOLD_RE.sub(r"<strong>\1</strong>", escaped)
    escaped = _EM_STAR_RE.sub(r"<em>\1</em>", escaped)
    return _EM_UNDERSCORE_RE.sub(r"<em>\1</em>", escaped)


def render_inline(text: str) -> str:
    """Escape ``text`` and apply inline code, links, bold and emphasis."""
    stash: list[str] = []

    def keep(fragment: str) -> str:
        stash.append(fragment)
        return f"\x00{len(stash) - 1}\x00"

    text = text.replace("\x00", "")
    text = _CODE_RE.sub(lambda m: keep(f"<code>{escape(m.group(1))}</code>"), text)
    text = _LINK_RE.sub(
        lambda m: keep(
            f'<a href="{escape(m.group(2))}" rel="noopener noreferrer">'
            f"{_emphasis(escape(m.group(1)))}</a>"
        ),
        text,
    )
    text = _emphasis(escape(text))
    # Link labels can hold stashed code spans, so expand until none remain.
    while _STASH_RE.search(text):
        text = _STASH_RE.sub(lambda m: stash[int(m.group(1))], text)
    return text


class MarkdownRenderer:
    """Renders the Markdown subset used by summaries.

    Headings shift down one level (``#`` becomes ``<h2>``) because the page
    owns the only ``<h1>``.
    """

    def render(self, raw: str) -> str:
        out: list[str] = []
        paragraph: list[str] = []
        items: list[str] = []
        quote: list[str] = []

        def flush() -> None:
            if paragraph:
                out.append(f"<p>{render_inline(' '.join(paragraph))}</p>")
                paragraph.clear()
            if items:
                lis = "".join(f"<li>{render_inline(item)}</li>" for item in items)
                out.append(f"<ul>{lis}</ul>")
                items.clear()
            if quote:
                out.append(f"<blockquote><p>{render_inline(' '.join(quote))}</p></blockquote>")
                quote.clear()

        for line in raw.replace("\r\n", "\n").split("\n"):
            if not line.strip():
                flush()
                continue

            heading = _HEADING_RE.match(line)
            if heading:
                flush()
                level = min(len(heading.group(1)) + 1, 6)
                out.append(f"<h{level}>{render_inline(heading.group(2))}</h{level}>")
                continue

            bullet = _BULLET_RE.match(line)
            if bullet:
                if paragraph or quote:
                    flush()
                items.append(bullet.group(1).strip())
                continue

            quoted = _QUOTE_RE.match(line)
            if quoted:
                if paragraph or items:
                    flush()
                quote.append(quoted.group(1).strip())
                continue

            if items and line[:1].isspace():
                items[-1] = f"{items[-1]} {line.strip()}"
                continue
            if items or quote:
                flush()
            paragraph.append(line.strip())

        flush()
        return "\n".join(out)


class PreformattedRenderer:
    """Escaped text in a ``<pre>`` block, layout preserved verbatim."""

    def render(self, raw: str) -> str:
        return f"<pre>{escape(raw)}</pre>"


_RENDERERS: dict[str, type[MarkdownRenderer] | type[PreformattedRenderer]] = {
    "markdown": MarkdownRenderer,
    "pre": PreformattedRenderer,
}


def get_renderer(name: str) -> Renderer:
    try:
        return _RENDERERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown renderer {name!r}; expected one of {sorted(_RENDERERS)}"
        ) from None
