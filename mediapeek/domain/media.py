from __future__ import annotations

import base64
import enum
import os
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mediapeek.ingest import PARSER_VERSION


class MediaKind(str, enum.Enum):
    video = "Video"
    audio = "Audio"
    image = "Image"


class IngestState(str, enum.Enum):
    unprocessed = "Unprocessed"
    in_flight = "InFlight"
    complete = "Complete"
    failed = "Failed"


class VideoStreamInfo(BaseModel):
    """Selected video stream of a probed file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    codec: str = ""
    width_px: int = 0
    height_px: int = 0
    frame_rate_fps: Optional[float] = None
    pixel_format: str = ""
    profile: str = ""


class AudioStreamInfo(BaseModel):
    """Selected audio stream of a probed file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    codec: str = ""
    sample_rate_hz: int = 0
    channels: int = 0
    channel_layout: str = ""
    sample_format: str = ""


class VideoDetails(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["Video"] = "Video"
    video: VideoStreamInfo = Field(default_factory=VideoStreamInfo)
    audio: Optional[AudioStreamInfo] = None


class AudioDetails(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["Audio"] = "Audio"
    audio: AudioStreamInfo = Field(default_factory=AudioStreamInfo)


class ImageDetails(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["Image"] = "Image"
    codec: str = ""
    width_px: int = 0
    height_px: int = 0
    pixel_format: str = ""


MediaDetails = Annotated[Union[VideoDetails, AudioDetails, ImageDetails], Field(discriminator="kind")]


class MediaMetadata(BaseModel):
    """Technical metadata extracted from one media file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    parser_version: str = PARSER_VERSION
    duration_s: float = Field(default=0.0, ge=0.0)
    size_bytes: int = Field(default=0, ge=0)
    container: str = ""
    bitrate_bps: int = Field(default=0, ge=0)
    details: MediaDetails = Field(default_factory=VideoDetails)

    @classmethod
    def empty(cls, kind: MediaKind = MediaKind.video) -> "MediaMetadata":
        """Zeroed record used when probing fails."""
        return cls(details=_empty_details(kind))

    @property
    def kind(self) -> MediaKind:
        return MediaKind(self.details.kind)

    def covers(self, kind: MediaKind) -> bool:
        """True when this record holds every field the current parser emits for ``kind``."""
        return self.parser_version == PARSER_VERSION and self.details.kind == kind.value


def _empty_details(kind: MediaKind) -> Union[VideoDetails, AudioDetails, ImageDetails]:
    if kind is MediaKind.audio:
        return AudioDetails()
    if kind is MediaKind.image:
        return ImageDetails()
    return VideoDetails()


class MediaEntry(BaseModel):
    """One playlist item. Instances are immutable; updates produce a merged copy."""

    model_config = ConfigDict(frozen=True)

    path: str
    display_name: str = ""
    kind: Optional[MediaKind] = None
    # Set when kind is the fallback for a failed probe; a later successful probe may replace it.
    kind_provisional: bool = False
    metadata: Optional[MediaMetadata] = None
    thumbnail: Optional[bytes] = Field(default=None, repr=False)
    ingest_state: IngestState = IngestState.unprocessed
    trim_start: Optional[float] = Field(default=None, ge=0.0)
    trim_end: Optional[float] = Field(default=None, ge=0.0)

    @model_validator(mode="before")
    @classmethod
    def _derive_display_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("path") and not data.get("display_name"):
            data = {**data, "display_name": os.path.basename(str(data["path"]).rstrip("/\\")) or str(data["path"])}
        return data

    @model_validator(mode="after")
    def _check_trim_order(self) -> "MediaEntry":
        if self.trim_start is not None and self.trim_end is not None and self.trim_start >= self.trim_end:
            raise ValueError("trim_start must be before trim_end")
        return self

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike]) -> "MediaEntry":
        return cls(path=os.path.abspath(os.fspath(path)))

    def has_expected_metadata(self) -> bool:
        if self.kind is MediaKind.image:
            return True
        if self.kind is None or self.metadata is None:
            return False
        return self.metadata.covers(self.kind)

    def needs_ingest(self) -> bool:
        if self.ingest_state is IngestState.unprocessed:
            return True
        return self.ingest_state is IngestState.complete and not self.has_expected_metadata()

    def merged(self, changes: Dict[str, Any]) -> "MediaEntry":
        """Return a copy with ``changes`` applied.

        ``kind`` is never replaced once a successful probe set it. Metadata of a
        different variant is not merged onto a confirmed kind, so the details
        always match ``kind``.
        """
        updates = dict(changes)
        if self.kind is not None and not self.kind_provisional:
            updates.pop("kind", None)
            updates.pop("kind_provisional", None)
            incoming = updates.get("metadata")
            if isinstance(incoming, MediaMetadata) and incoming.kind is not self.kind:
                updates["metadata"] = self._consistent_metadata()
        payload = {**self.model_dump(), **updates}
        return MediaEntry.model_validate(payload)

    def _consistent_metadata(self) -> MediaMetadata:
        assert self.kind is not None
        if self.metadata is not None and self.metadata.covers(self.kind):
            return self.metadata
        return MediaMetadata.empty(self.kind)

    def thumbnail_data_uri(self) -> Optional[str]:
        if not self.thumbnail:
            return None
        return "data:image/jpeg;base64," + base64.b64encode(self.thumbnail).decode("ascii")


__all__ = [
    "MediaKind",
    "IngestState",
    "VideoStreamInfo",
    "AudioStreamInfo",
    "VideoDetails",
    "AudioDetails",
    "ImageDetails",
    "MediaDetails",
    "MediaMetadata",
    "MediaEntry",
]
