from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from .core.cache import get_cache_store
from .core.config import Settings, get_settings
from .core.errors import ToolInvocationFailure
from .core.logging import configure_logging
from .domain.media import MediaEntry, MediaKind
from .domain.playlist import Playlist
from .ingest.probe import probe_media
from .ingest.thumbnails import generate_thumbnail
from .ingest.tools import binary_version
from .services.export import export_clip, export_frame, suggest_export_name
from .services.ingest_service import IngestionCoordinator

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(level=logging.DEBUG if args.verbose else logging.WARNING)
    settings = get_settings()

    if getattr(args, "check", False):
        _run_environment_check(settings)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args, settings)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI.

    Returns:
        The argument parser.
    """
    parser = argparse.ArgumentParser(description="mediapeek ingestion and export CLI")
    parser.add_argument("--check", action="store_true", help="Validate presence of ffmpeg/ffprobe")
    parser.add_argument("-v", "--verbose", action="store_true", help="Emit debug logs")

    subparsers = parser.add_subparsers(dest="command")

    probe_parser = subparsers.add_parser("probe", help="Run ffprobe and print the metadata record as JSON")
    probe_parser.add_argument("--file", required=True, help="Path to the source media file")
    probe_parser.set_defaults(func=_cmd_probe)

    thumb_parser = subparsers.add_parser("thumb", help="Extract a preview thumbnail")
    thumb_parser.add_argument("--file", required=True, help="Path to the source media file")
    thumb_parser.add_argument("--out", required=True, help="Destination JPEG")
    thumb_parser.set_defaults(func=_cmd_thumb)

    ingest_parser = subparsers.add_parser("ingest", help="Ingest files through the cache pipeline")
    ingest_parser.add_argument("files", nargs="+", help="Media files, duplicates allowed")
    ingest_parser.add_argument("--rescan", action="store_true", help="Ignore cached thumbnails")
    ingest_parser.set_defaults(func=_cmd_ingest)

    frame_parser = subparsers.add_parser("export-frame", help="Export a single full quality frame")
    frame_parser.add_argument("--file", required=True, help="Path to the source media file")
    frame_parser.add_argument("--at", type=float, required=True, help="Timestamp in seconds")
    frame_parser.add_argument("--out", help="Destination image (defaults to a timestamped name)")
    frame_parser.set_defaults(func=_cmd_export_frame)

    clip_parser = subparsers.add_parser("export-clip", help="Export a trimmed, re-encoded clip")
    clip_parser.add_argument("--file", required=True, help="Path to the source media file")
    clip_parser.add_argument("--start", type=float, required=True, help="Mark in, seconds")
    clip_parser.add_argument("--end", type=float, required=True, help="Mark out, seconds")
    clip_parser.add_argument("--out", help="Destination .mp4 (defaults to a timestamped name)")
    clip_parser.set_defaults(func=_cmd_export_clip)
    return parser


def _resolve_media(raw: str) -> Path:
    media_path = Path(raw).expanduser().resolve()
    if not media_path.exists():
        console.print(f"[red]File not found: {media_path}[/]")
        sys.exit(2)
    return media_path


def _cmd_probe(args: argparse.Namespace, settings: Settings) -> None:
    media_path = _resolve_media(args.file)
    outcome = probe_media(str(media_path), settings)
    if not outcome.ok:
        console.print(f"[red]ffprobe failed ({outcome.failure}):[/] {outcome.detail}")
        sys.exit(3)
    assert outcome.metadata is not None
    console.print_json(data=outcome.metadata.model_dump(mode="json"))


def _cmd_thumb(args: argparse.Namespace, settings: Settings) -> None:
    media_path = _resolve_media(args.file)
    outcome = probe_media(str(media_path), settings)
    if outcome.kind is MediaKind.audio:
        console.print("[yellow]Audio files have no thumbnail.[/]")
        sys.exit(1)
    duration = outcome.metadata.duration_s if outcome.metadata else 0.0
    output = Path(args.out).expanduser().resolve()
    output.parent.mkdir(parents=True, exist_ok=True)
    dimensions = generate_thumbnail(str(media_path), outcome.kind, output, settings, duration_s=duration)
    if dimensions is None:
        console.print("[red]Thumbnail generation failed.[/]")
        sys.exit(3)
    width, height = dimensions
    console.print(f"[green]Thumbnail written to {output}[/] ({width}x{height})")


def _cmd_ingest(args: argparse.Namespace, settings: Settings) -> None:
    playlist = Playlist()
    playlist.add([Path(item).expanduser() for item in args.files])
    coordinator = IngestionCoordinator(settings, get_cache_store(settings), playlist)

    async def _runner() -> None:
        if args.rescan:
            coordinator.rescan()
        else:
            coordinator.submit_pending()
        await coordinator.drain()

    asyncio.run(_runner())

    table = Table(title=f"Ingested into {settings.thumbnails_dir}")
    for column in ("#", "File", "Kind", "State", "Duration", "Resolution", "Thumbnail"):
        table.add_column(column)
    for index, entry in enumerate(playlist):
        table.add_row(str(index), entry.display_name, *_describe(entry))
    console.print(table)


def _describe(entry: MediaEntry) -> tuple[str, str, str, str, str]:
    kind = entry.kind.value if entry.kind else "-"
    duration = "-"
    resolution = "-"
    if entry.metadata is not None:
        duration = f"{entry.metadata.duration_s:.2f}s"
        details = entry.metadata.details
        if details.kind == "Video":
            resolution = f"{details.video.width_px}x{details.video.height_px}"
        elif details.kind == "Image":
            resolution = f"{details.width_px}x{details.height_px}"
    thumbnail = "yes" if entry.thumbnail else "no"
    return kind, entry.ingest_state.value, duration, resolution, thumbnail


def _cmd_export_frame(args: argparse.Namespace, settings: Settings) -> None:
    media_path = _resolve_media(args.file)
    destination = Path(args.out) if args.out else Path(suggest_export_name(media_path.name, "snapshot", "png"))
    try:
        written = export_frame(str(media_path), args.at, destination.expanduser().resolve(), settings)
    except ToolInvocationFailure as exc:
        console.print(f"[red]Frame export failed:[/] {exc} {exc.stderr}")
        sys.exit(3)
    console.print(f"[green]Frame written to {written}[/]")


def _cmd_export_clip(args: argparse.Namespace, settings: Settings) -> None:
    media_path = _resolve_media(args.file)
    destination = Path(args.out) if args.out else Path(suggest_export_name(media_path.name, "clip", "mp4"))
    try:
        entry = MediaEntry(path=str(media_path), kind=MediaKind.video, trim_start=args.start, trim_end=args.end)
    except ValueError as exc:
        console.print(f"[red]Invalid trim range:[/] {exc}")
        sys.exit(2)
    try:
        written = export_clip(entry, destination.expanduser().resolve(), settings)
    except ToolInvocationFailure as exc:
        console.print(f"[red]Clip export failed:[/] {exc} {exc.stderr}")
        sys.exit(3)
    console.print(f"[green]Clip written to {written}[/]")


def _run_environment_check(settings: Settings) -> None:
    """Check for the presence of required external dependencies."""
    results = {
        "ffmpeg": binary_version(settings.ffmpeg_path),
        "ffprobe": binary_version(settings.ffprobe_path),
    }

    console.rule("[bold]Environment Check")
    for label, version in results.items():
        ok = version != "unknown"
        console.print(f"[bold]{label}[/]: {'✅' if ok else '❌'} [dim]{version if ok else ''}[/]")

    if any(version == "unknown" for version in results.values()):
        console.print("[red]Missing dependencies detected. Install ffmpeg or set MEDIAPEEK_FFMPEG_PATH.[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()
