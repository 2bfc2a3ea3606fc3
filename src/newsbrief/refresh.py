"""Refresh-on-expiry cache with single-flight fetch coordination.

One ``RefreshCache`` per process holds the current ``Snapshot``. Reads are
served from it while it is younger than the TTL. The first read after expiry
refreshes it; concurrent readers that also saw it expire queue on the writer
lock and re-check, so only one fetch runs per expiry window.

A failed attempt is stamped like a successful one: the previous content stays
in place, the error is recorded alongside it, and the next attempt waits a full
TTL. Fetch and render failures never escape ``get_current()``.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Callable

import structlog

from newsbrief.errors import ErrorCode, FetchError
from newsbrief.models.snapshot import CacheState, Snapshot
from newsbrief.rwlock import RWLock

if TYPE_CHECKING:
    from newsbrief.fetchers.base import Fetcher
    from newsbrief.render import Renderer

log = structlog.get_logger()


class RefreshCache:
    def __init__(
        self,
        fetcher: Fetcher,
        renderer: Renderer,
        ttl: timedelta | float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        ttl_seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
        if ttl_seconds <= 0:
            raise ValueError(f"ttl must be positive, got {ttl_seconds!r}")
        self._fetcher = fetcher
        self._renderer = renderer
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = RWLock()
        self._snapshot = Snapshot()
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def snapshot(self) -> Snapshot:
        """Current snapshot, without triggering a refresh."""
        return self._snapshot

    def state(self) -> CacheState:
        return self._snapshot.state(self._clock(), self._ttl)

    def needs_refresh(self, snapshot: Snapshot, now: float) -> bool:
        return snapshot.is_expired(now, self._ttl)

    async def get_current(self) -> tuple[str, FetchError | None]:
        """Return the cached content and the error of the latest attempt, if any.

        Content may be non-empty alongside an error (stale but usable), or
        empty with an error when no attempt has succeeded yet.
        """
        snapshot = await self.get_snapshot()
        return snapshot.content, snapshot.last_error

    async def get_snapshot(self) -> Snapshot:
        async with self._lock.read():
            stale = self.needs_refresh(self._snapshot, self._clock())

        if stale:
            # Shielded: a caller that goes away must not abort the refresh
            # it started, later callers still benefit from it.
            task = asyncio.ensure_future(self._refresh_if_stale())
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            await asyncio.shield(task)

        async with self._lock.read():
            return self._snapshot

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def _refresh_if_stale(self) -> None:
        async with self._lock.write():
            if not self.needs_refresh(self._snapshot, self._clock()):
                log.debug("refresh_skipped_after_recheck")
                return
            self._snapshot = await self._refresh(self._snapshot)

    async def _refresh(self, previous: Snapshot) -> Snapshot:
        attempt = previous.attempts + 1
        started = self._clock()
        log.info("refresh_started", attempt=attempt)

        error: FetchError | None = None
        try:
            raw = await self._fetcher.fetch()
            content = self._renderer.render(raw)
        except FetchError as exc:
            error = exc
        except Exception as exc:
            log.error("refresh_unexpected_error", attempt=attempt, exc_info=True)
            error = FetchError(ErrorCode.FETCH_FAILED, f"{type(exc).__name__}: {exc}")

        finished = self._clock()
        if previous.fetched_at is not None:
            finished = max(finished, previous.fetched_at)
        wall = datetime.now(UTC)
        duration = round(finished - started, 3)

        if error is not None:
            log.warning(
                "refresh_failed",
                attempt=attempt,
                code=error.code.value,
                error=error.message,
                duration_s=duration,
                has_stale_content=bool(previous.content),
            )
            return replace(
                previous,
                fetched_at=finished,
                refreshed_at=wall,
                last_error=error,
                attempts=attempt,
            )

        log.info("refresh_succeeded", attempt=attempt, duration_s=duration, raw_chars=len(raw))
        return Snapshot(
            content=content,
            raw_content=raw,
            fetched_at=finished,
            refreshed_at=wall,
            succeeded_at=wall,
            last_error=None,
            attempts=attempt,
        )
