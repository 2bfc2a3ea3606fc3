from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from newsbrief.config import Settings
    from newsbrief.fetchers.base import Fetcher
    from newsbrief.refresh import RefreshCache


@dataclass
class AppState:
    """Everything a request handler needs, built once at startup.

    Holds the process's single ``RefreshCache``; handlers receive it through
    this object rather than through module globals.
    """

    settings: Settings
    fetcher: Fetcher
    cache: RefreshCache
