from __future__ import annotations

from newsbrief.models.feed import FeedItem
from newsbrief.models.health import CacheStatus, ErrorInfo, HealthOutput
from newsbrief.models.snapshot import CacheState, Snapshot

__all__ = [
    # feeds
    "FeedItem",
    # cache
    "CacheState",
    "Snapshot",
    # health
    "CacheStatus",
    "ErrorInfo",
    "HealthOutput",
]
