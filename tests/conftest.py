"""Shared fixtures: a controllable clock and stub collaborators for the cache."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from newsbrief.refresh import RefreshCache

TTL = 3600.0


class FakeClock:
    """Monotonic clock that only moves when a test says so."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubFetcher:
    """Returns (or raises) ``next`` on every call and counts calls.

    When ``gate`` is set, each call blocks until the event fires.
    """

    def __init__(self, result: str | Exception = "A") -> None:
        self.next: str | Exception = result
        self.calls = 0
        self.gate: asyncio.Event | None = None
        self.on_fetch: Callable[[], None] | None = None
        self.closed = False

    async def fetch(self) -> str:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.on_fetch is not None:
            self.on_fetch()
        if isinstance(self.next, Exception):
            raise self.next
        return self.next

    async def aclose(self) -> None:
        self.closed = True


class BracketRenderer:
    def render(self, raw: str) -> str:
        return f"<{raw}>"


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fetcher() -> StubFetcher:
    return StubFetcher()


@pytest.fixture()
def refresh_cache(fetcher: StubFetcher, clock: FakeClock) -> RefreshCache:
    return RefreshCache(fetcher, BracketRenderer(), TTL, clock=clock)
