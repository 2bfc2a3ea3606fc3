"""Asyncio reader/writer lock.

Many readers may hold the lock at once; a writer holds it alone. Waiters are
served in arrival order and a queued writer blocks readers that arrive after
it, so a writer cannot be starved by a steady stream of readers.

Release is synchronous so that a cancelled task can never leak a held lock.
"""

from __future__ import annotations

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator


class RWLock:
    def __init__(self) -> None:
        self._readers = 0
        self._writer = False
        # (is_writer, future) in arrival order
        self._waiters: deque[tuple[bool, asyncio.Future[None]]] = deque()

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def writer_active(self) -> bool:
        return self._writer

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    # ------------------------------------------------------------------
    # Shared side
    # ------------------------------------------------------------------

    async def acquire_read(self) -> None:
        if not self._writer and not self._waiters:
            self._readers += 1
            return
        await self._wait(is_writer=False)

    def release_read(self) -> None:
        if self._readers <= 0:
            raise RuntimeError("release_read() called without a held read lock")
        self._readers -= 1
        if self._readers == 0:
            self._wake()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        await self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    # ------------------------------------------------------------------
    # Exclusive side
    # ------------------------------------------------------------------

    async def acquire_write(self) -> None:
        if not self._writer and self._readers == 0 and not self._waiters:
            self._writer = True
            return
        await self._wait(is_writer=True)

    def release_write(self) -> None:
        if not self._writer:
            raise RuntimeError("release_write() called without a held write lock")
        self._writer = False
        self._wake()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        await self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _wait(self, *, is_writer: bool) -> None:
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        entry = (is_writer, fut)
        self._waiters.append(entry)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # Granted just before the cancellation landed: hand it back.
                if is_writer:
                    self.release_write()
                else:
                    self.release_read()
            else:
                try:
                    self._waiters.remove(entry)
                except ValueError:
                    pass
                self._wake()
            raise

    def _wake(self) -> None:
        while self._waiters:
            is_writer, fut = self._waiters[0]
            if fut.done():
                self._waiters.popleft()
                continue
            if is_writer:
                if self._writer or self._readers:
                    return
                self._waiters.popleft()
                self._writer = True
                fut.set_result(None)
                return
            if self._writer:
                return
            self._waiters.popleft()
            self._readers += 1
            fut.set_result(None)
