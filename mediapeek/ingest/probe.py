from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Optional

from mediapeek.core.config import Settings
from mediapeek.core.errors import ParseFailure, ToolInvocationFailure, ToolTimedOut
from mediapeek.core.logging import get_logger
from mediapeek.domain.media import MediaKind, MediaMetadata

from . import tools
from .ffprobe_parser import ParsedProbe, decode_ffprobe_output, parse_ffprobe_json

ProbeFailure = Literal["tool_invocation_failure", "parse_failure", "timed_out"]


@dataclass(slots=True)
class ProbeOutcome:
    """Either a parsed probe or an explicit failure; never both."""

    parsed: Optional[ParsedProbe] = None
    failure: Optional[ProbeFailure] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.parsed is not None

    @property
    def metadata(self) -> Optional[MediaMetadata]:
        return self.parsed.metadata if self.parsed else None

    @property
    def kind(self) -> MediaKind:
        """Classified kind; failed probes fall back to video."""
        return self.parsed.kind if self.parsed else MediaKind.video


def build_probe_command(path: str, settings: Settings) -> List[str]:
    return [
        settings.ffprobe_path,
        "-v",
        "error",
        "-show_format",
        "-show_streams",
        "-print_format",
        "json",
        path,
    ]


def probe_media(path: str, settings: Settings) -> ProbeOutcome:
    """Run ffprobe on ``path`` and parse the result.

    Corrupt or unreadable files are an expected outcome, reported through
    ``ProbeOutcome.failure`` rather than raised.

    Args:
        path: The media path.
        settings: Runtime settings (tool path and timeout).

    Returns:
        The probe outcome.
    """
    logger = get_logger(component="probe", path=path)
    command = build_probe_command(path, settings)
    try:
        proc = tools.run_tool(command, timeout=settings.tool_timeout_s)
    except ToolTimedOut as exc:
        logger.warning("probe_timed_out", timeout_s=settings.tool_timeout_s)
        return ProbeOutcome(failure="timed_out", detail=str(exc))
    except ToolInvocationFailure as exc:
        logger.warning("probe_failed", returncode=exc.returncode, stderr=exc.stderr[:500])
        return ProbeOutcome(failure="tool_invocation_failure", detail=str(exc))

    try:
        raw = decode_ffprobe_output(proc.stdout)
        parsed = parse_ffprobe_json(raw, path)
    except (ParseFailure, ValueError) as exc:
        # pydantic's ValidationError is a ValueError.
        logger.warning("probe_output_unparseable", error=str(exc))
        return ProbeOutcome(failure="parse_failure", detail=str(exc))

    logger.debug("probe_succeeded", kind=parsed.kind.value, duration_s=parsed.metadata.duration_s)
    return ProbeOutcome(parsed=parsed)


__all__ = ["ProbeFailure", "ProbeOutcome", "build_probe_command", "probe_media"]
