from __future__ import annotations

from newsbrief.fetchers.base import Fetcher
from newsbrief.fetchers.command import CommandFetcher
from newsbrief.fetchers.feeds import FeedFetcher, build_http_client

__all__ = [
    "CommandFetcher",
    "FeedFetcher",
    "Fetcher",
    "build_http_client",
]
