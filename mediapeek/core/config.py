from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_cache_dir() -> Path:
    xdg = os.getenv("XDG_CACHE_HOME")
    base = Path(xdg) if xdg else Path.home() / ".cache"
    return base / "mediapeek"


class Settings(BaseSettings):
    """Centralised runtime configuration for the mediapeek preview core."""

    model_config = SettingsConfigDict(
        env_prefix="MEDIAPEEK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "mediapeek"
    environment: str = Field(default="development", description="Deployment environment label.")
    version: str = Field(default="0.1.0", description="Version reported by the local API.")
    log_level: str = Field(default="info")

    cache_dir: Path = Field(default_factory=_default_cache_dir, description="Application cache directory.")

    ffprobe_path: str = Field(default="ffprobe", description="Probing tool executable.")
    ffmpeg_path: str = Field(default="ffmpeg", description="Transcoding tool executable.")

    thumbnail_width: int = Field(default=320, ge=16, description="Thumbnail width in pixels; height keeps aspect.")
    thumbnail_offset_s: float = Field(default=1.0, ge=0.0, description="Sample offset into the media.")
    thumbnail_quality: int = Field(default=4, ge=1, le=31, description="JPEG quality scale passed to ffmpeg.")

    tool_timeout_s: Optional[float] = Field(
        default=None,
        gt=0,
        description="Upper bound for a single external tool invocation (unbounded when unset).",
    )
    probe_on_cache_hit: bool = Field(
        default=False,
        description="Run a metadata-only probe when a thumbnail is restored from the cache.",
    )

    snap_threshold_s: float = Field(default=0.5, gt=0, description="Drift above which visual time hard-snaps.")
    tick_interval_s: float = Field(default=1 / 60, gt=0, description="Display refresh interval for the tick loop.")
    enable_playback_api: bool = Field(default=True, description="Mount the /v1/playback routes.")

    @field_validator("log_level")
    @classmethod
    def _lower_log_level(cls, value: str) -> str:
        return value.lower()

    @property
    def logging_level(self) -> int:
        """Numeric ``logging`` level for ``log_level``; unknown names fall back to INFO."""
        level = getattr(logging, self.log_level.upper(), None)
        return level if isinstance(level, int) else logging.INFO

    @property
    def environment_lower(self) -> str:
        return self.environment.lower()

    @property
    def thumbnails_dir(self) -> Path:
        return self.cache_dir / "thumbnails"


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    _ENV_ALIAS_MAP = {
        "MEDIAPEEK_ENV": "MEDIAPEEK_ENVIRONMENT",
        "MEDIAPEEK_CACHE": "MEDIAPEEK_CACHE_DIR",
    }

    for source, target in _ENV_ALIAS_MAP.items():
        value = os.getenv(source)
        if value:
            os.environ[target] = value

    return Settings()


__all__ = ["Settings", "get_settings"]
