"""Domain entities shared by the ingestion pipeline, the API and the CLI."""

from mediapeek.domain.media import (
    AudioDetails,
    AudioStreamInfo,
    ImageDetails,
    IngestState,
    MediaEntry,
    MediaKind,
    MediaMetadata,
    VideoDetails,
    VideoStreamInfo,
)
from mediapeek.domain.playlist import Playlist

__all__ = [
    "AudioDetails",
    "AudioStreamInfo",
    "ImageDetails",
    "IngestState",
    "MediaEntry",
    "MediaKind",
    "MediaMetadata",
    "Playlist",
    "VideoDetails",
    "VideoStreamInfo",
]
