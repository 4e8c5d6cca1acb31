from __future__ import annotations

import asyncio
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set, Tuple

from mediapeek.core.cache import CacheStore
from mediapeek.core.config import Settings
from mediapeek.core.errors import CacheIOFailure, CacheMiss
from mediapeek.core.logging import get_logger
from mediapeek.domain.media import IngestState, MediaEntry, MediaKind, MediaMetadata
from mediapeek.domain.playlist import Playlist
from mediapeek.ingest.content_id import content_identifier
from mediapeek.ingest.probe import ProbeOutcome, probe_media
from mediapeek.ingest.thumbnails import generate_thumbnail

Prober = Callable[[str, Settings], ProbeOutcome]
Thumbnailer = Callable[..., Optional[Tuple[int, int]]]


@dataclass(slots=True)
class RescanResult:
    tasks: List[asyncio.Task[None]] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class IngestionCoordinator:
    """Populates metadata and thumbnails for playlist entries.

    ``submit`` runs on the event loop thread and never awaits before the
    in-flight check-and-add, so at most one pipeline per path is running
    without any lock. Tool invocations run in worker threads; completion
    order across paths is unspecified.
    """

    def __init__(
        self,
        settings: Settings,
        cache: CacheStore,
        playlist: Playlist,
        *,
        prober: Optional[Prober] = None,
        thumbnailer: Optional[Thumbnailer] = None,
    ):
        self.settings = settings
        self.cache = cache
        self.playlist = playlist
        self._prober = prober or probe_media
        self._thumbnailer = thumbnailer or generate_thumbnail
        self._in_flight: Set[str] = set()
        self._tasks: Set[asyncio.Task[None]] = set()
        self.logger = get_logger(component="ingest_coordinator")

    @property
    def in_flight(self) -> FrozenSet[str]:
        return frozenset(self._in_flight)

    def submit(self, entry: MediaEntry, index: int, *, bypass_cache: bool = False) -> Optional[asyncio.Task[None]]:
        """Schedule ingestion of ``entry``; returns None when there is nothing to do."""
        loop = asyncio.get_running_loop()
        if entry.ingest_state is IngestState.in_flight or entry.path in self._in_flight:
            self.logger.debug("ingest_skipped", path=entry.path, reason="in_flight")
            return None
        if not bypass_cache and entry.ingest_state is IngestState.complete and entry.has_expected_metadata():
            self.logger.debug("ingest_skipped", path=entry.path, reason="complete")
            return None

        self._in_flight.add(entry.path)
        self.playlist.merge(index, entry.path, {"ingest_state": IngestState.in_flight})
        task = loop.create_task(self._run(entry.path, index, bypass_cache=bypass_cache))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def ingest(self, entry: MediaEntry, index: int) -> None:
        task = self.submit(entry, index)
        if task is not None:
            await task

    def submit_pending(self) -> List[asyncio.Task[None]]:
        """Submit every entry that is unprocessed or carries an outdated record."""
        tasks: List[asyncio.Task[None]] = []
        for index, entry in enumerate(self.playlist.entries):
            if not entry.needs_ingest():
                continue
            task = self.submit(entry, index)
            if task is not None:
                tasks.append(task)
        return tasks

    def rescan(self) -> RescanResult:
        """Force every entry back through the full pipeline, ignoring cached thumbnails.

        Paths already in flight are left to their running pipeline and reported
        in ``RescanResult.skipped``.
        """
        tasks: List[asyncio.Task[None]] = []
        skipped: List[str] = []
        for index, entry in enumerate(self.playlist.entries):
            if entry.path in self._in_flight:
                if entry.path not in skipped:
                    self.logger.info("rescan_skipped_in_flight", path=entry.path)
                    skipped.append(entry.path)
                continue
            self.playlist.merge(index, entry.path, {"ingest_state": IngestState.unprocessed})
            task = self.submit(self.playlist.get(index), index, bypass_cache=True)
            if task is not None:
                tasks.append(task)
        self.logger.info("rescan_started", submitted=len(tasks), skipped=len(skipped), entries=len(self.playlist))
        return RescanResult(tasks=tasks, skipped=skipped)

    async def drain(self) -> None:
        """Wait until no pipeline is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run(self, path: str, index: int, *, bypass_cache: bool) -> None:
        log = self.logger.bind(path=path)
        try:
            changes = await self._pipeline(path, bypass_cache=bypass_cache, log=log)
            self.playlist.merge(index, path, changes)
        except Exception:
            log.exception("ingest_pipeline_failed")
            self.playlist.merge(index, path, {"ingest_state": IngestState.failed})
        finally:
            self._in_flight.discard(path)

    async def _pipeline(self, path: str, *, bypass_cache: bool, log: Any) -> Dict[str, Any]:
        content_id = content_identifier(path)
        log = log.bind(content_id=content_id)

        cache_ready = True
        try:
            self.cache.ensure_ready()
        except CacheIOFailure as exc:
            log.warning("cache_unavailable", error=str(exc))
            cache_ready = False

        if cache_ready and not bypass_cache and self.cache.exists(content_id):
            cached = self._read_cached(content_id, log)
            if cached is not None:
                changes: Dict[str, Any] = {"thumbnail": cached, "ingest_state": IngestState.complete}
                if self.settings.probe_on_cache_hit:
                    outcome = await asyncio.to_thread(self._prober, path, self.settings)
                    if outcome.ok:
                        changes.update(kind=outcome.kind, kind_provisional=False, metadata=outcome.metadata)
                log.info("ingest_cache_hit", probed=self.settings.probe_on_cache_hit)
                return changes

        outcome = await asyncio.to_thread(self._prober, path, self.settings)
        kind = outcome.kind
        metadata = outcome.metadata or MediaMetadata.empty(kind)
        changes = {
            "kind": kind,
            "kind_provisional": not outcome.ok,
            "metadata": metadata,
            "ingest_state": IngestState.complete,
        }

        if kind is not MediaKind.audio:
            thumbnail = await asyncio.to_thread(
                self._render_thumbnail, path, kind, content_id, metadata.duration_s, cache_ready, log
            )
            if thumbnail is not None:
                changes["thumbnail"] = thumbnail

        log.info(
            "ingest_completed",
            kind=kind.value,
            probe_failure=outcome.failure,
            thumbnail="thumbnail" in changes,
        )
        return changes

    def _read_cached(self, content_id: str, log: Any) -> Optional[bytes]:
        try:
            return self.cache.read(content_id)
        except (CacheMiss, CacheIOFailure) as exc:
            log.warning("cache_read_failed", error=str(exc))
            return None

    def _render_thumbnail(
        self,
        path: str,
        kind: MediaKind,
        content_id: str,
        duration_s: float,
        cache_ready: bool,
        log: Any,
    ) -> Optional[bytes]:
        with tempfile.TemporaryDirectory(prefix="mediapeek-thumb-") as scratch:
            target = Path(scratch) / f"{content_id}.jpg"
            dimensions = self._thumbnailer(path, kind, target, self.settings, duration_s=duration_s)
            if dimensions is None:
                return None
            payload = target.read_bytes()

        if cache_ready:
            try:
                self.cache.write(content_id, payload)
            except CacheIOFailure as exc:
                log.warning("cache_write_failed", error=str(exc))
        return payload


__all__ = ["IngestionCoordinator", "Prober", "RescanResult", "Thumbnailer"]
