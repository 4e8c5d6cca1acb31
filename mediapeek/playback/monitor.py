from __future__ import annotations

import asyncio
import enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from mediapeek.core.logging import get_logger

from .sync import TimeSynchronizer


class PlaybackStatus(str, enum.Enum):
    playing = "Playing"
    paused = "Paused"
    buffering = "Buffering"
    finished = "Finished"
    error = "Error"


class PlaybackHeartbeat(BaseModel):
    """Position report pushed by the native player."""

    model_config = ConfigDict(extra="ignore")

    current_time: float = Field(..., ge=0.0)
    duration: float = Field(default=0.0, ge=0.0)
    status: PlaybackStatus = PlaybackStatus.playing


class TickLoop:
    """Fires ``callback`` once per ``interval_s`` on the running event loop.

    Runs as a chain of ``loop.call_later`` handles, so no thread or task is
    created and ``stop`` cancels the pending handle immediately.
    """

    def __init__(self, callback: Callable[[], object], interval_s: float):
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self._callback = callback
        self.interval_s = interval_s
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._schedule()

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self) -> None:
        assert self._loop is not None
        self._handle = self._loop.call_later(self.interval_s, self._fire)

    def _fire(self) -> None:
        if self._handle is None:
            return
        try:
            self._callback()
        finally:
            # The callback may have stopped the loop.
            if self._handle is not None:
                self._schedule()


class PlaybackMonitor:
    """Feeds heartbeats into the synchronizer and runs ticks while playing."""

    def __init__(self, synchronizer: TimeSynchronizer, *, tick_interval_s: float):
        self.synchronizer = synchronizer
        self.tick_loop = TickLoop(synchronizer.tick, tick_interval_s)
        self.duration = 0.0
        self.status = PlaybackStatus.paused
        self.logger = get_logger(component="playback_monitor")

    @property
    def is_playing(self) -> bool:
        return self.status is PlaybackStatus.playing

    def handle_heartbeat(self, heartbeat: PlaybackHeartbeat) -> bool:
        """Apply one heartbeat. Returns True when the visual time hard-snapped."""
        self.duration = heartbeat.duration
        snapped = self.synchronizer.heartbeat(heartbeat.current_time)
        self._set_status(heartbeat.status)
        return snapped

    def seek(self, target_time: float) -> None:
        if self.duration > 0:
            target_time = min(target_time, self.duration)
        self.synchronizer.seek(max(target_time, 0.0))

    def pause(self) -> None:
        self._set_status(PlaybackStatus.paused)

    def play(self) -> None:
        self._set_status(PlaybackStatus.playing)

    def stop(self) -> None:
        self.tick_loop.stop()

    def _set_status(self, status: PlaybackStatus) -> None:
        if status is not self.status:
            self.logger.debug("playback_status_changed", previous=self.status.value, status=status.value)
        self.status = status
        if status is PlaybackStatus.playing:
            self.tick_loop.start()
        else:
            self.tick_loop.stop()


__all__ = ["PlaybackHeartbeat", "PlaybackMonitor", "PlaybackStatus", "TickLoop"]
