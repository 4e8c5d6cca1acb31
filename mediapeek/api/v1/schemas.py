from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from mediapeek.domain.media import IngestState, MediaEntry, MediaKind, MediaMetadata
from mediapeek.playback.monitor import PlaybackStatus


class HealthResponse(BaseModel):
    status: str = Field(default="ok", description="Health status indicator.")
    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ToolStatus(BaseModel):
    available: bool
    version: str


class ToolsResponse(BaseModel):
    ffmpeg: ToolStatus
    ffprobe: ToolStatus


class AddEntriesRequest(BaseModel):
    paths: List[str] = Field(..., min_length=1, json_schema_extra={"example": ["/media/clip.mov"]})


class EntryResponse(BaseModel):
    index: int
    path: str
    display_name: str
    kind: Optional[MediaKind]
    ingest_state: IngestState
    metadata: Optional[MediaMetadata]
    has_thumbnail: bool
    thumbnail_url: Optional[str]
    trim_start: Optional[float]
    trim_end: Optional[float]

    @classmethod
    def from_entry(cls, index: int, entry: MediaEntry) -> "EntryResponse":
        return cls(
            index=index,
            path=entry.path,
            display_name=entry.display_name,
            kind=entry.kind,
            ingest_state=entry.ingest_state,
            metadata=entry.metadata,
            has_thumbnail=entry.thumbnail is not None,
            thumbnail_url=f"/v1/playlist/{index}/thumbnail" if entry.thumbnail is not None else None,
            trim_start=entry.trim_start,
            trim_end=entry.trim_end,
        )


class PlaylistResponse(BaseModel):
    entries: List[EntryResponse]
    in_flight: List[str] = Field(default_factory=list)


class RescanResponse(PlaylistResponse):
    skipped: List[str] = Field(default_factory=list)


class TrimRequest(BaseModel):
    mark: Literal["in", "out"]
    time: float = Field(..., ge=0.0)


class PlaybackSnapshot(BaseModel):
    visual_time: float
    anchor_time: float
    duration: float
    status: PlaybackStatus
    ticking: bool


class HeartbeatAccepted(PlaybackSnapshot):
    snapped: bool


class SeekRequest(BaseModel):
    time: float = Field(..., ge=0.0)
