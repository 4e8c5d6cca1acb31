from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response, status

from mediapeek.api import deps
from mediapeek.core.errors import StateFailure
from mediapeek.domain.playlist import Playlist
from mediapeek.services.ingest_service import IngestionCoordinator

from . import schemas


router = APIRouter(prefix="/playlist", tags=["playlist"])


def _snapshot(playlist: Playlist, coordinator: IngestionCoordinator) -> schemas.PlaylistResponse:
    return schemas.PlaylistResponse(
        entries=[schemas.EntryResponse.from_entry(index, entry) for index, entry in enumerate(playlist)],
        in_flight=sorted(coordinator.in_flight),
    )


def _entry_or_404(playlist: Playlist, index: int):
    try:
        return playlist.get(index)
    except StateFailure:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="entry_not_found")


@router.get("", response_model=schemas.PlaylistResponse)
async def list_entries(
    playlist: deps.PlaylistDependency,
    coordinator: deps.CoordinatorDependency,
) -> schemas.PlaylistResponse:
    return _snapshot(playlist, coordinator)


@router.post("", response_model=schemas.PlaylistResponse, status_code=status.HTTP_202_ACCEPTED)
async def add_entries(
    payload: schemas.AddEntriesRequest,
    playlist: deps.PlaylistDependency,
    coordinator: deps.CoordinatorDependency,
    wait: bool = False,
) -> schemas.PlaylistResponse:
    playlist.add(payload.paths)
    coordinator.submit_pending()
    if wait:
        await coordinator.drain()
    return _snapshot(playlist, coordinator)


@router.post("/rescan", response_model=schemas.RescanResponse, status_code=status.HTTP_202_ACCEPTED)
async def rescan(
    playlist: deps.PlaylistDependency,
    coordinator: deps.CoordinatorDependency,
    wait: bool = False,
) -> schemas.RescanResponse:
    result = coordinator.rescan()
    if wait:
        await coordinator.drain()
    snapshot = _snapshot(playlist, coordinator)
    return schemas.RescanResponse(entries=snapshot.entries, in_flight=snapshot.in_flight, skipped=result.skipped)


@router.delete("/{index}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_entry(index: int, playlist: deps.PlaylistDependency) -> Response:
    try:
        playlist.remove(index)
    except StateFailure:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="entry_not_found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{index}/thumbnail", response_class=Response)
async def fetch_thumbnail(index: int, playlist: deps.PlaylistDependency) -> Response:
    entry = _entry_or_404(playlist, index)
    if entry.thumbnail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="thumbnail_not_found")
    return Response(content=entry.thumbnail, media_type="image/jpeg")


@router.put("/{index}/trim", response_model=schemas.EntryResponse)
async def set_trim_mark(
    index: int,
    payload: schemas.TrimRequest,
    playlist: deps.PlaylistDependency,
) -> schemas.EntryResponse:
    _entry_or_404(playlist, index)
    if payload.mark == "in":
        entry = playlist.set_mark_in(index, payload.time)
    else:
        entry = playlist.set_mark_out(index, payload.time)
    return schemas.EntryResponse.from_entry(index, entry)


@router.delete("/{index}/trim", response_model=schemas.EntryResponse)
async def clear_trim_marks(index: int, playlist: deps.PlaylistDependency) -> schemas.EntryResponse:
    _entry_or_404(playlist, index)
    return schemas.EntryResponse.from_entry(index, playlist.clear_marks(index))


__all__ = ["router"]
