from __future__ import annotations

from fastapi import APIRouter

from mediapeek.api import deps
from mediapeek.playback.monitor import PlaybackHeartbeat, PlaybackMonitor

from . import schemas


router = APIRouter(prefix="/playback", tags=["playback"])


def _snapshot(monitor: PlaybackMonitor) -> schemas.PlaybackSnapshot:
    state = monitor.synchronizer.state
    return schemas.PlaybackSnapshot(
        visual_time=state.visual_time,
        anchor_time=state.anchor_time,
        duration=monitor.duration,
        status=monitor.status,
        ticking=monitor.tick_loop.running,
    )


@router.get("", response_model=schemas.PlaybackSnapshot)
async def playback_state(monitor: deps.PlaybackDependency) -> schemas.PlaybackSnapshot:
    return _snapshot(monitor)


@router.post("/heartbeat", response_model=schemas.HeartbeatAccepted)
async def heartbeat(payload: PlaybackHeartbeat, monitor: deps.PlaybackDependency) -> schemas.HeartbeatAccepted:
    snapped = monitor.handle_heartbeat(payload)
    return schemas.HeartbeatAccepted(**_snapshot(monitor).model_dump(), snapped=snapped)


@router.post("/seek", response_model=schemas.PlaybackSnapshot)
async def seek(payload: schemas.SeekRequest, monitor: deps.PlaybackDependency) -> schemas.PlaybackSnapshot:
    monitor.seek(payload.time)
    return _snapshot(monitor)


@router.post("/pause", response_model=schemas.PlaybackSnapshot)
async def pause(monitor: deps.PlaybackDependency) -> schemas.PlaybackSnapshot:
    monitor.pause()
    return _snapshot(monitor)


__all__ = ["router"]
