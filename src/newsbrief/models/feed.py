from __future__ import annotations

from pydantic import BaseModel


class FeedItem(BaseModel):
    """One condensed story taken from a feed entry."""

    source: str
    title: str
    link: str | None = None
    summary: str = ""  # Plain text, tags stripped and truncated
