from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Fetcher(Protocol):
    """Produces the raw (pre-render) page content.

    ``fetch()`` returns the best content it could assemble and raises
    ``FetchError`` only when nothing usable was obtained. Every external call
    it makes is bounded by its own timeout.
    """

    async def fetch(self) -> str: ...

    async def aclose(self) -> None: ...
