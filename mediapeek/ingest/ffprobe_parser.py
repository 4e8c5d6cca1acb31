from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple, Union

from mediapeek.core.errors import ParseFailure
from mediapeek.domain.media import (
    AudioDetails,
    AudioStreamInfo,
    ImageDetails,
    MediaKind,
    MediaMetadata,
    VideoDetails,
    VideoStreamInfo,
)

from . import IMAGE_EXTENSIONS

StreamType = Literal["video", "audio", "data", "subtitle", "other"]

_DEFAULT_LAYOUTS = {1: "mono", 2: "stereo"}


@dataclass(slots=True)
class ParsedProbe:
    """Normalised probe result: the metadata record and the stream presence flags."""

    metadata: MediaMetadata
    has_video: bool
    has_audio: bool

    @property
    def kind(self) -> MediaKind:
        return self.metadata.kind


def decode_ffprobe_output(stdout: Union[str, bytes]) -> Dict[str, Any]:
    """Decode ffprobe's JSON output.

    Raises:
        ParseFailure: The output is not a JSON object or its bytes are not valid UTF-8.
    """
    try:
        payload = json.loads(stdout)
    except (TypeError, ValueError) as exc:
        raise ParseFailure(f"ffprobe output is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ParseFailure("ffprobe output is not a JSON object")
    return payload


def classify_kind(path: str, *, has_video: bool, has_audio: bool) -> MediaKind:
    """Image extensions win, then audio-only files; everything else is video."""
    extension = os.path.splitext(path)[1].lstrip(".").lower()
    if extension in IMAGE_EXTENSIONS:
        return MediaKind.image
    if has_audio and not has_video:
        return MediaKind.audio
    return MediaKind.video


def parse_ffprobe_json(raw: Dict[str, Any], path: str) -> ParsedProbe:
    """Normalise ffprobe JSON into a typed metadata record.

    Args:
        raw: The decoded ffprobe JSON (``-show_format -show_streams``).
        path: The probed path, used for extension based classification.

    Returns:
        The parsed probe.
    """
    format_info = raw.get("format") or {}
    if not isinstance(format_info, dict):
        raise ParseFailure("ffprobe 'format' section is not an object")
    raw_streams = raw.get("streams") or []
    if not isinstance(raw_streams, list):
        raise ParseFailure("ffprobe 'streams' section is not a list")

    video_streams, audio_streams = _parse_streams(raw_streams)
    video = _select_video_stream(video_streams) if video_streams else None
    audio = _select_audio_stream(audio_streams) if audio_streams else None

    kind = classify_kind(path, has_video=video is not None, has_audio=audio is not None)

    # Prefer the primary stream's own bitrate over the container figure.
    primary = video if video is not None else audio
    bitrate = _int_or_none(primary.get("bit_rate")) if primary is not None else None
    if not bitrate:
        bitrate = _int_or_none(format_info.get("bit_rate"))

    metadata = MediaMetadata(
        duration_s=_parse_duration(format_info.get("duration")),
        size_bytes=max(_int_or_none(format_info.get("size")) or 0, 0),
        container=str(format_info.get("format_name") or ""),
        bitrate_bps=max(bitrate or 0, 0),
        details=_build_details(kind, video, audio),
    )
    return ParsedProbe(metadata=metadata, has_video=video is not None, has_audio=audio is not None)


def _build_details(
    kind: MediaKind,
    video: Optional[Dict[str, Any]],
    audio: Optional[Dict[str, Any]],
) -> VideoDetails | AudioDetails | ImageDetails:
    if kind is MediaKind.image:
        stream = video or {}
        return ImageDetails(
            codec=_string(stream.get("codec_name")),
            width_px=_int_or_none(stream.get("width")) or 0,
            height_px=_int_or_none(stream.get("height")) or 0,
            pixel_format=_string(stream.get("pix_fmt")),
        )
    audio_info = _summarise_audio_stream(audio) if audio is not None else None
    if kind is MediaKind.audio:
        return AudioDetails(audio=audio_info or AudioStreamInfo())
    video_info = _summarise_video_stream(video) if video is not None else VideoStreamInfo()
    return VideoDetails(video=video_info, audio=audio_info)


def _summarise_video_stream(stream: Dict[str, Any]) -> VideoStreamInfo:
    """Summarise the selected video stream.

    Args:
        stream: The raw ffprobe stream.

    Returns:
        The video stream summary.
    """
    return VideoStreamInfo(
        codec=_string(stream.get("codec_name")),
        width_px=_int_or_none(stream.get("width")) or 0,
        height_px=_int_or_none(stream.get("height")) or 0,
        frame_rate_fps=_frame_rate_from_stream(stream),
        pixel_format=_string(stream.get("pix_fmt")),
        profile=_profile_with_level(stream.get("profile"), stream.get("level")),
    )


def _summarise_audio_stream(stream: Dict[str, Any]) -> AudioStreamInfo:
    """Summarise the selected audio stream.

    Args:
        stream: The raw ffprobe stream.

    Returns:
        The audio stream summary.
    """
    channels = _int_or_none(stream.get("channels")) or 0
    layout = _string(stream.get("channel_layout")) or _DEFAULT_LAYOUTS.get(channels, "")
    return AudioStreamInfo(
        codec=_string(stream.get("codec_name")),
        sample_rate_hz=_int_or_none(stream.get("sample_rate")) or 0,
        channels=channels,
        channel_layout=layout,
        sample_format=_string(stream.get("sample_fmt")),
    )


def _profile_with_level(profile: Any, level: Any) -> str:
    """Return e.g. ``"Main 41"``; ffprobe reports unknown levels as -99."""
    if not profile or profile == "unknown":
        return ""
    text = str(profile)
    if level not in (None, "", "unknown", -99, "-99"):
        text = f"{text} {level}"
    return text


def _parse_streams(streams: Iterable[Any]) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Split the streams from ffprobe by type.

    Args:
        streams: The streams from ffprobe.

    Returns:
        A tuple containing the video streams and the audio streams, in index order.
    """
    video_streams: List[Dict[str, Any]] = []
    audio_streams: List[Dict[str, Any]] = []
    for stream in streams:
        if not isinstance(stream, dict):
            continue
        stream_type = _normalise_stream_type(stream.get("codec_type"))
        if stream_type == "video":
            video_streams.append(stream)
        elif stream_type == "audio":
            audio_streams.append(stream)
    video_streams.sort(key=lambda item: _int_or_none(item.get("index")) or 0)
    audio_streams.sort(key=lambda item: _int_or_none(item.get("index")) or 0)
    return video_streams, audio_streams


def _normalise_stream_type(value: Any) -> StreamType:
    if not isinstance(value, str):
        return "other"
    value_lower = value.lower()
    if value_lower in {"video", "audio", "data", "subtitle"}:
        return value_lower  # type: ignore[return-value]
    return "other"


def _select_video_stream(streams: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Select the default video stream, else the one with the most pixels."""
    default_streams = [stream for stream in streams if _disposition_default(stream.get("disposition")) is True]
    if default_streams:
        return default_streams[0]

    def score(item: Dict[str, Any]) -> int:
        width = _int_or_none(item.get("width")) or 0
        height = _int_or_none(item.get("height")) or 0
        return width * height

    return max(streams, key=score)


def _select_audio_stream(streams: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Select the default audio stream, else the one with the most channels."""
    default_streams = [stream for stream in streams if _disposition_default(stream.get("disposition")) is True]
    if default_streams:
        return default_streams[0]

    def score(item: Dict[str, Any]) -> Tuple[int, int]:
        channels = _int_or_none(item.get("channels")) or 0
        sample_rate = _int_or_none(item.get("sample_rate")) or 0
        return channels, sample_rate

    return max(streams, key=score)


def _disposition_default(disposition: Any) -> Optional[bool]:
    if not isinstance(disposition, dict):
        return None
    default_value = disposition.get("default")
    if default_value is None:
        return None
    return bool(default_value)


def _frame_rate_from_stream(stream: Dict[str, Any]) -> Optional[float]:
    """Get the frame rate from a stream.

    Args:
        stream: The raw ffprobe stream.

    Returns:
        The frame rate, or None if it's not available.
    """
    for key in ("avg_frame_rate", "r_frame_rate"):
        rate = parse_rational(stream.get(key))
        if rate is not None and rate > 0:
            return rate
    return None


def parse_rational(value: Any) -> Optional[float]:
    """Parse an ffprobe rational such as ``"30000/1001"``.

    Args:
        value: The rational number as a string.

    Returns:
        The parsed value rounded to 3 places, or None when it is unknown
        (including a zero denominator).
    """
    if not value or value in {"0/0", "N/A"}:
        return None
    value = str(value)
    if "/" not in value:
        # Already a float string.
        try:
            parsed = float(value)
        except ValueError:
            return None
        return round(parsed, 3) if math.isfinite(parsed) else None
    numerator_str, denominator_str = value.split("/", 1)
    try:
        numerator = float(numerator_str)
        denominator = float(denominator_str)
    except ValueError:
        return None
    if math.isclose(denominator, 0.0) or not math.isfinite(numerator) or not math.isfinite(denominator):
        return None
    return round(numerator / denominator, 3)


def _parse_duration(raw_value: Any) -> float:
    if raw_value in (None, "N/A", ""):
        return 0.0
    try:
        duration = float(raw_value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(duration) or duration < 0:
        return 0.0
    return duration


def _int_or_none(value: Any) -> Optional[int]:
    if value in (None, "N/A", ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return None


def _string(value: Any) -> str:
    if value in (None, "unknown"):
        return ""
    return str(value)


__all__ = [
    "ParsedProbe",
    "classify_kind",
    "decode_ffprobe_output",
    "parse_ffprobe_json",
    "parse_rational",
]
