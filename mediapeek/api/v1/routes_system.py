from __future__ import annotations

import asyncio

from fastapi import APIRouter

from mediapeek.api import deps
from mediapeek.ingest.tools import binary_version

from .schemas import HealthResponse, ToolStatus, ToolsResponse


router = APIRouter(tags=["system"])


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/system/tools", response_model=ToolsResponse, summary="External tool availability")
async def tools(settings: deps.SettingsDependency) -> ToolsResponse:
    ffmpeg_version, ffprobe_version = await asyncio.gather(
        asyncio.to_thread(binary_version, settings.ffmpeg_path),
        asyncio.to_thread(binary_version, settings.ffprobe_path),
    )
    return ToolsResponse(
        ffmpeg=ToolStatus(available=ffmpeg_version != "unknown", version=ffmpeg_version),
        ffprobe=ToolStatus(available=ffprobe_version != "unknown", version=ffprobe_version),
    )


__all__ = ["router"]
