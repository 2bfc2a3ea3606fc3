from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from newsbrief.errors import FetchError


class CacheState(StrEnum):
    EMPTY = "empty"  # no refresh has succeeded yet
    FRESH = "fresh"
    STALE = "stale"  # TTL elapsed, next read refreshes
    STALE_WITH_ERROR = "stale_with_error"  # latest attempt failed


@dataclass(frozen=True)
class Snapshot:
    """Cached page content as of the last completed refresh attempt.

    Replaced as a whole by the refresh cache, never mutated in place.
    """

    content: str = ""  # rendered markup
    raw_content: str = ""  # fetcher output the markup was rendered from
    fetched_at: float | None = None  # clock reading of the last attempt, success or failure
    refreshed_at: datetime | None = None
    succeeded_at: datetime | None = None
    last_error: FetchError | None = None
    attempts: int = 0

    @property
    def has_succeeded(self) -> bool:
        return self.succeeded_at is not None

    def age(self, now: float) -> float | None:
        if self.fetched_at is None:
            return None
        return now - self.fetched_at

    def is_expired(self, now: float, ttl: float) -> bool:
        age = self.age(now)
        return age is None or age >= ttl

    def state(self, now: float, ttl: float) -> CacheState:
        if not self.has_succeeded:
            return CacheState.EMPTY
        if self.last_error is not None:
            return CacheState.STALE_WITH_ERROR
        if self.is_expired(now, ttl):
            return CacheState.STALE
        return CacheState.FRESH
