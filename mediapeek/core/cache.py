from __future__ import annotations

import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

from .config import Settings
from .errors import CacheIOFailure, CacheMiss
from .logging import get_logger

THUMBNAIL_SUFFIX = ".jpg"


class CacheStore(ABC):
    """Maps content identifiers to cached thumbnail bytes."""

    @abstractmethod
    def ensure_ready(self) -> None: ...

    @abstractmethod
    def exists(self, content_id: str) -> bool: ...

    @abstractmethod
    def read(self, content_id: str) -> bytes: ...

    @abstractmethod
    def write(self, content_id: str, payload: bytes) -> Path: ...

    @abstractmethod
    def path_for(self, content_id: str) -> Path: ...

    @abstractmethod
    def list(self) -> Iterable[str]: ...


class LocalCacheStore(CacheStore):
    """One JPEG per content identifier under a dedicated directory."""

    def __init__(self, base_path: Path):
        self.base_path = base_path
        self.logger = get_logger(component="cache_store")

    def ensure_ready(self) -> None:
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheIOFailure(f"cannot create cache directory {self.base_path}: {exc}") from exc

    def path_for(self, content_id: str) -> Path:
        if not content_id or os.sep in content_id or "/" in content_id or content_id.startswith("."):
            raise ValueError(f"Invalid content identifier: {content_id!r}")
        return self.base_path / f"{content_id}{THUMBNAIL_SUFFIX}"

    def exists(self, content_id: str) -> bool:
        return self.path_for(content_id).is_file()

    def read(self, content_id: str) -> bytes:
        path = self.path_for(content_id)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise CacheMiss(content_id) from exc
        except OSError as exc:
            raise CacheIOFailure(f"cannot read {path}: {exc}") from exc

    def write(self, content_id: str, payload: bytes) -> Path:
        path = self.path_for(content_id)
        self.ensure_ready()
        # Stage next to the target so the rename stays on one filesystem.
        try:
            fd, staging = tempfile.mkstemp(prefix=f".{content_id}.", suffix=".part", dir=self.base_path)
        except OSError as exc:
            raise CacheIOFailure(f"cannot stage {path}: {exc}") from exc
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(staging, path)
        except OSError as exc:
            Path(staging).unlink(missing_ok=True)
            raise CacheIOFailure(f"cannot write {path}: {exc}") from exc
        self.logger.debug("cache_record_written", content_id=content_id, size_bytes=len(payload))
        return path

    def list(self) -> Iterable[str]:
        if not self.base_path.exists():
            return []
        return sorted(p.stem for p in self.base_path.glob(f"*{THUMBNAIL_SUFFIX}") if p.is_file())


def get_cache_store(settings: Settings) -> CacheStore:
    return LocalCacheStore(base_path=Path(settings.thumbnails_dir))


__all__ = [
    "CacheStore",
    "LocalCacheStore",
    "THUMBNAIL_SUFFIX",
    "get_cache_store",
]
