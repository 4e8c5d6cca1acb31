"""Versioned API routing for mediapeek."""

from fastapi import APIRouter

from . import routes_playback, routes_playlist, routes_system


def get_api_router(*, include_playback: bool = True) -> APIRouter:
    router = APIRouter(prefix="/v1")
    router.include_router(routes_system.router)
    router.include_router(routes_playlist.router)
    if include_playback:
        router.include_router(routes_playback.router)
    return router


__all__ = ["get_api_router"]
