from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from mediapeek.api.v1 import get_api_router
from mediapeek.core.cache import get_cache_store
from mediapeek.core.config import Settings, get_settings
from mediapeek.core.logging import configure_logging, get_logger
from mediapeek.domain.playlist import Playlist
from mediapeek.playback.monitor import PlaybackMonitor
from mediapeek.playback.sync import TimeSynchronizer
from mediapeek.services.ingest_service import IngestionCoordinator


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(level=settings.logging_level)
    logger = get_logger(component="app")

    cache = get_cache_store(settings)
    playlist = Playlist()
    coordinator = IngestionCoordinator(settings, cache, playlist)
    playback: Optional[PlaybackMonitor] = None
    if settings.enable_playback_api:
        synchronizer = TimeSynchronizer(snap_threshold_s=settings.snap_threshold_s)
        playback = PlaybackMonitor(synchronizer, tick_interval_s=settings.tick_interval_s)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings
        app.state.cache = cache
        app.state.playlist = playlist
        app.state.coordinator = coordinator
        app.state.playback = playback
        logger.info("app_started", cache_dir=str(settings.thumbnails_dir), environment=settings.environment)
        try:
            yield
        finally:
            if playback is not None:
                playback.stop()
            # In-flight pipelines are never cancelled; let them publish.
            await coordinator.drain()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )
    app.include_router(get_api_router(include_playback=playback is not None))
    return app


__all__ = ["create_app"]
