from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from mediapeek.core.config import Settings, get_settings
from mediapeek.domain.playlist import Playlist
from mediapeek.playback.monitor import PlaybackMonitor
from mediapeek.services.ingest_service import IngestionCoordinator


def get_app_settings(request: Request) -> Settings:
    settings: Settings | None = getattr(request.app.state, "settings", None)
    return settings or get_settings()


def get_playlist(request: Request) -> Playlist:
    playlist: Playlist = request.app.state.playlist
    return playlist


def get_coordinator(request: Request) -> IngestionCoordinator:
    coordinator: IngestionCoordinator = request.app.state.coordinator
    return coordinator


def get_playback_monitor(request: Request) -> PlaybackMonitor:
    monitor: PlaybackMonitor | None = getattr(request.app.state, "playback", None)
    if monitor is None:  # pragma: no cover - routes are not mounted without it
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="playback_disabled")
    return monitor


SettingsDependency = Annotated[Settings, Depends(get_app_settings)]
PlaylistDependency = Annotated[Playlist, Depends(get_playlist)]
CoordinatorDependency = Annotated[IngestionCoordinator, Depends(get_coordinator)]
PlaybackDependency = Annotated[PlaybackMonitor, Depends(get_playback_monitor)]


__all__ = [
    "get_app_settings",
    "get_playlist",
    "get_coordinator",
    "get_playback_monitor",
    "SettingsDependency",
    "PlaylistDependency",
    "CoordinatorDependency",
    "PlaybackDependency",
]
