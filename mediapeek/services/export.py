from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from mediapeek.core.config import Settings
from mediapeek.core.logging import get_logger
from mediapeek.domain.media import MediaEntry, MediaKind
from mediapeek.ingest import tools


def suggest_export_name(display_name: str, label: str, extension: str, *, now: Optional[datetime] = None) -> str:
    """Return ``<stem>_<label>_<timestamp>.<extension>`` for a save dialog."""
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    timestamp = moment.strftime("%Y-%m-%dT%H-%M-%S")
    stem = os.path.splitext(display_name)[0] or "export"
    return f"{stem}_{label}_{timestamp}.{extension.lstrip('.')}"


def build_frame_command(path: str, at_s: float, destination: Path, settings: Settings) -> List[str]:
    return [
        settings.ffmpeg_path,
        "-nostdin",
        "-v",
        "error",
        "-y",
        "-ss",
        f"{max(at_s, 0.0):.3f}",
        "-i",
        path,
        "-frames:v",
        "1",
        "-q:v",
        "2",
        str(destination),
    ]


def build_clip_command(path: str, start_s: float, end_s: float, destination: Path, settings: Settings) -> List[str]:
    # Input seeking then re-encoding keeps the cut frame accurate.
    return [
        settings.ffmpeg_path,
        "-nostdin",
        "-v",
        "error",
        "-y",
        "-ss",
        f"{start_s:.3f}",
        "-i",
        path,
        "-t",
        f"{end_s - start_s:.3f}",
        "-c:v",
        "libx264",
        "-preset",
        "fast",
        "-crf",
        "23",
        "-c:a",
        "aac",
        str(destination),
    ]


def _run_staged(destination: Path, build: Callable[[Path], List[str]], settings: Settings) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    # ffmpeg writes next to the target and the result only replaces it on success.
    fd, staging = tempfile.mkstemp(prefix=f".{destination.stem}.", suffix=destination.suffix, dir=destination.parent)
    os.close(fd)
    try:
        tools.run_tool(build(Path(staging)), timeout=settings.tool_timeout_s)
        os.replace(staging, destination)
    finally:
        Path(staging).unlink(missing_ok=True)


def export_frame(path: str, at_s: float, destination: Path, settings: Settings) -> Path:
    """Write the frame at ``at_s`` to ``destination`` (format follows its extension).

    Raises:
        ToolInvocationFailure: ffmpeg failed; an existing ``destination`` is left untouched.
    """
    _run_staged(destination, lambda staging: build_frame_command(path, at_s, staging, settings), settings)
    get_logger(component="export", path=path).info("frame_exported", at_s=at_s, destination=str(destination))
    return destination


def export_clip(entry: MediaEntry, destination: Path, settings: Settings) -> Path:
    """Re-encode the trimmed range of a video entry into ``destination``.

    Raises:
        ValueError: The entry is not a video or has no complete trim range.
        ToolInvocationFailure: ffmpeg failed; an existing ``destination`` is left untouched.
    """
    if entry.kind is not MediaKind.video:
        raise ValueError("only video entries can be exported as clips")
    if entry.trim_start is None or entry.trim_end is None:
        raise ValueError("both trim marks are required to export a clip")
    if entry.trim_end <= entry.trim_start:
        raise ValueError("trim range is empty")

    start_s, end_s = entry.trim_start, entry.trim_end
    _run_staged(
        destination,
        lambda staging: build_clip_command(entry.path, start_s, end_s, staging, settings),
        settings,
    )
    get_logger(component="export", path=entry.path).info(
        "clip_exported",
        start_s=entry.trim_start,
        end_s=entry.trim_end,
        destination=str(destination),
    )
    return destination


__all__ = [
    "build_clip_command",
    "build_frame_command",
    "export_clip",
    "export_frame",
    "suggest_export_name",
]
