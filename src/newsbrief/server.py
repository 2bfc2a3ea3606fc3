"""HTTP entry point.

Serves one page: the current time plus the cached news summary. Run with
``python -m newsbrief.server`` or the ``newsbrief`` console script.
"""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import AsyncIterator

import structlog
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse
from pydantic import ValidationError

from newsbrief.config import Settings
from newsbrief.fetchers.base import Fetcher
from newsbrief.fetchers.command import CommandFetcher
from newsbrief.fetchers.feeds import FeedFetcher, build_http_client
from newsbrief.logging_config import configure_logging
from newsbrief.models.health import CacheStatus, ErrorInfo, HealthOutput
from newsbrief.page import PENDING_NOTICE, UNAVAILABLE_NOTICE, render_page
from newsbrief.refresh import RefreshCache
from newsbrief.render import get_renderer
from newsbrief.state import AppState

log = structlog.get_logger()


def build_fetcher(settings: Settings) -> Fetcher:
    if settings.fetcher.mode == "feeds":
        client = build_http_client(settings.fetcher)
        return FeedFetcher.from_settings(client, settings.fetcher)
    return CommandFetcher.from_settings(settings.fetcher)


def build_state(settings: Settings) -> AppState:
    fetcher = build_fetcher(settings)
    cache = RefreshCache(
        fetcher,
        get_renderer(settings.page.renderer),
        timedelta(seconds=settings.cache.ttl_seconds),
    )
    return AppState(settings=settings, fetcher=fetcher, cache=cache)


def get_state(request: Request) -> AppState:
    return request.app.state.newsbrief


def create_app(settings: Settings | None = None, state: AppState | None = None) -> FastAPI:
    """Build the application.

    With ``state`` given, it is used as is and left open on shutdown (tests
    inject one wired to stub collaborators). Otherwise the lifespan builds
    the fetcher and the single cache from ``settings`` and closes them again.
    """
    if settings is None:
        settings = state.settings if state is not None else Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if state is not None:
            app.state.newsbrief = state
            yield
            return

        app_state = build_state(settings)
        app.state.newsbrief = app_state
        log.info(
            "server_started",
            fetcher=settings.fetcher.mode,
            ttl_s=settings.cache.ttl_seconds,
            renderer=settings.page.renderer,
        )
        try:
            if settings.cache.warm_on_startup:
                await app_state.cache.get_current()
            yield
        finally:
            await app_state.fetcher.aclose()
            log.info("server_stopped")

    app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/", response_class=HTMLResponse)
    async def index(app_state: AppState = Depends(get_state)) -> HTMLResponse:
        page = app_state.settings.page
        snapshot = await app_state.cache.get_snapshot()
        error = snapshot.last_error

        notice: str | None = None
        if not snapshot.content:
            if error is not None:
                log.error("summary_unavailable", code=error.code.value, error=error.message)
                notice = UNAVAILABLE_NOTICE
            else:
                notice = PENDING_NOTICE
        elif error is not None:
            log.warning("serving_stale_summary", code=error.code.value, error=error.message)

        body = render_page(
            page,
            content=snapshot.content,
            now=datetime.now(UTC),
            notice=notice,
            updated_at=snapshot.succeeded_at,
        )
        return HTMLResponse(
            body,
            headers={"Cache-Control": f"max-age={page.cache_max_age_seconds}"},
        )

    @app.get("/health", response_model=HealthOutput)
    async def health(app_state: AppState = Depends(get_state)) -> HealthOutput:
        cache = app_state.cache
        snapshot = cache.snapshot
        error = snapshot.last_error
        return HealthOutput(
            cache=CacheStatus(
                state=cache.state(),
                fetched_at=snapshot.refreshed_at,
                succeeded_at=snapshot.succeeded_at,
                attempts=snapshot.attempts,
                last_error=ErrorInfo(code=error.code, message=error.message) if error else None,
            )
        )

    return app


def main() -> None:
    try:
        settings = Settings()
    except ValidationError as exc:
        sys.exit(f"Invalid configuration:\n{exc}")

    configure_logging(settings.logging)
    log.info("server_starting", host=settings.server.host, port=settings.server.port)
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
