"""Integration test fixtures.

Provides an AppState wired to the stub fetcher and fake clock from
tests/conftest.py, and a TestClient serving it through the real app.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Iterator

import pytest
from fastapi.testclient import TestClient

from newsbrief.config import Settings
from newsbrief.refresh import RefreshCache
from newsbrief.render import MarkdownRenderer
from newsbrief.server import create_app
from newsbrief.state import AppState

if TYPE_CHECKING:
    from conftest import FakeClock, StubFetcher

TTL = 3600.0


@pytest.fixture()
def settings() -> Settings:
    return Settings()


@pytest.fixture()
def app_state(settings: Settings, fetcher: StubFetcher, clock: FakeClock) -> AppState:
    fetcher.next = "# Markets\n\nStocks rose."
    cache = RefreshCache(fetcher, MarkdownRenderer(), TTL, clock=clock)
    return AppState(settings=settings, fetcher=fetcher, cache=cache)


@pytest.fixture()
def client(app_state: AppState) -> Iterator[TestClient]:
    with TestClient(create_app(state=app_state)) as test_client:
        yield test_client


@pytest.fixture()
def subprocess_env(tmp_path) -> dict[str, str]:
    """Environment for launching the server in a subprocess, isolated from user config."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("NEWSBRIEF__")}
    env["XDG_CONFIG_HOME"] = str(tmp_path / "config")
    return env
