"""Smooth, monotonic display time from sparse playback heartbeats.

The native player reports its position a few dozen times per second at
irregular intervals. Showing those values directly stutters; extrapolating
freely drifts away from the player. The synchronizer keeps an anchor (last
reported position plus the local monotonic clock reading when it arrived)
and projects from it on every display tick:

* ``heartbeat(t)`` re-anchors. When the displayed time is more than
  ``snap_threshold_s`` away from ``t`` (a seek or a stall) it hard-snaps.
  Smaller drift is left to the projection.
* ``tick()`` advances to ``max(anchor_time + elapsed, visual_time)``, so the
  displayed time never runs backwards between snaps.
* ``seek(t)`` is a user seek and always snaps.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from mediapeek.core.logging import get_logger

Clock = Callable[[], float]
UpdateCallback = Callable[[float], None]

DEFAULT_SNAP_THRESHOLD_S = 0.5


@dataclass(frozen=True, slots=True)
class SyncState:
    anchor_time: float
    anchor_wall_clock: float
    visual_time: float


class TimeSynchronizer:
    def __init__(
        self,
        *,
        snap_threshold_s: float = DEFAULT_SNAP_THRESHOLD_S,
        clock: Clock = time.monotonic,
        on_update: Optional[UpdateCallback] = None,
        initial_time: float = 0.0,
    ):
        if snap_threshold_s <= 0:
            raise ValueError("snap_threshold_s must be positive")
        self.snap_threshold_s = snap_threshold_s
        self._clock = clock
        self._on_update = on_update
        self._state = SyncState(anchor_time=initial_time, anchor_wall_clock=clock(), visual_time=initial_time)
        self.logger = get_logger(component="time_sync")

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def visual_time(self) -> float:
        return self._state.visual_time

    def drift(self, backend_time: float) -> float:
        return abs(self._state.visual_time - backend_time)

    def heartbeat(self, backend_time: float) -> bool:
        """Re-anchor on a backend report. Returns True when it hard-snapped."""
        drift = self.drift(backend_time)
        snapped = drift > self.snap_threshold_s
        visual_time = backend_time if snapped else self._state.visual_time
        self._state = SyncState(anchor_time=backend_time, anchor_wall_clock=self._clock(), visual_time=visual_time)
        if snapped:
            self.logger.debug("playback_hard_snap", backend_time=backend_time, drift_s=round(drift, 4))
            self._emit(visual_time)
        return snapped

    def seek(self, target_time: float) -> None:
        self._state = SyncState(anchor_time=target_time, anchor_wall_clock=self._clock(), visual_time=target_time)
        self._emit(target_time)

    def tick(self) -> float:
        """Advance and emit the visual time for one display refresh."""
        state = self._state
        projected = state.anchor_time + (self._clock() - state.anchor_wall_clock)
        visual_time = max(projected, state.visual_time)
        self._state = SyncState(
            anchor_time=state.anchor_time,
            anchor_wall_clock=state.anchor_wall_clock,
            visual_time=visual_time,
        )
        self._emit(visual_time)
        return visual_time

    def _emit(self, value: float) -> None:
        if self._on_update is not None:
            self._on_update(value)


__all__ = ["Clock", "SyncState", "TimeSynchronizer", "UpdateCallback", "DEFAULT_SNAP_THRESHOLD_S"]
