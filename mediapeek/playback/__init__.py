"""Display-rate playback time derived from native player heartbeats."""

from mediapeek.playback.monitor import PlaybackHeartbeat, PlaybackMonitor, PlaybackStatus, TickLoop
from mediapeek.playback.sync import SyncState, TimeSynchronizer

__all__ = [
    "PlaybackHeartbeat",
    "PlaybackMonitor",
    "PlaybackStatus",
    "SyncState",
    "TickLoop",
    "TimeSynchronizer",
]
