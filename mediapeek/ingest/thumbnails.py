from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import cv2  # type: ignore

from mediapeek.core.config import Settings
from mediapeek.core.errors import ToolInvocationFailure
from mediapeek.core.logging import get_logger
from mediapeek.domain.media import MediaKind

from . import tools


def sample_offset(kind: MediaKind, settings: Settings, duration_s: float = 0.0) -> float:
    """Timestamp of the representative frame.

    Images have a single frame. Media known to be shorter than the configured
    offset is sampled from the start so ffmpeg does not seek past the end.
    """
    if kind is MediaKind.image:
        return 0.0
    if 0.0 < duration_s <= settings.thumbnail_offset_s:
        return 0.0
    return settings.thumbnail_offset_s


def build_thumbnail_command(path: str, timestamp: float, output_path: Path, settings: Settings) -> List[str]:
    return [
        settings.ffmpeg_path,
        "-nostdin",
        "-v",
        "error",
        "-y",
        "-ss",
        f"{max(timestamp, 0.0):.3f}",
        "-i",
        path,
        "-frames:v",
        "1",
        "-vf",
        f"scale={settings.thumbnail_width}:-2",
        "-q:v",
        str(settings.thumbnail_quality),
        str(output_path),
    ]


def generate_thumbnail(
    path: str,
    kind: MediaKind,
    output_path: Path,
    settings: Settings,
    *,
    duration_s: float = 0.0,
) -> Optional[Tuple[int, int]]:
    """Extract one scaled frame of ``path`` into ``output_path``.

    Args:
        path: The media path.
        kind: The classified media kind.
        output_path: Destination JPEG; overwritten when present.
        settings: Runtime settings.
        duration_s: Known media duration, 0 when unknown.

    Returns:
        The ``(width, height)`` of the written frame, or None on failure, in
        which case nothing is left at ``output_path``.
    """
    if kind is MediaKind.audio:
        raise ValueError("audio media has no frame to extract")

    logger = get_logger(component="thumbnails", path=path)
    timestamp = sample_offset(kind, settings, duration_s)
    command = build_thumbnail_command(path, timestamp, output_path, settings)
    try:
        tools.run_tool(command, timeout=settings.tool_timeout_s)
    except ToolInvocationFailure as exc:
        logger.warning("thumbnail_generation_failed", error=str(exc), stderr=exc.stderr[:500])
        output_path.unlink(missing_ok=True)
        return None

    try:
        return _image_dimensions(output_path)
    except RuntimeError as exc:
        # ffmpeg exits 0 without writing a frame when the seek lands past the end.
        logger.warning("thumbnail_unreadable", error=str(exc))
        output_path.unlink(missing_ok=True)
        return None


def _image_dimensions(image_path: Path) -> Tuple[int, int]:
    if not image_path.is_file():
        raise RuntimeError(f"No thumbnail was written to {image_path}")
    image = cv2.imread(str(image_path))
    if image is None:
        raise RuntimeError(f"Failed to read generated thumbnail at {image_path}")
    height, width = image.shape[:2]
    return width, height


__all__ = ["build_thumbnail_command", "generate_thumbnail", "sample_offset"]
