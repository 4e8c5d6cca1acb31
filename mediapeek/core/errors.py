"""Failure taxonomy shared by the ingestion pipeline and the playlist."""

from __future__ import annotations

from typing import Optional, Sequence


class MediaPeekError(Exception):
    """Base class for every failure raised by mediapeek."""


class ToolInvocationFailure(MediaPeekError):
    """The external tool is missing, crashed, or exited non-zero."""

    def __init__(
        self,
        tool: str,
        reason: str,
        *,
        returncode: Optional[int] = None,
        stderr: str = "",
        command: Sequence[str] = (),
    ) -> None:
        super().__init__(f"{tool}: {reason}")
        self.tool = tool
        self.reason = reason
        self.returncode = returncode
        self.stderr = stderr
        self.command = list(command)


class ToolTimedOut(ToolInvocationFailure):
    """The external tool exceeded the configured timeout."""


class ParseFailure(MediaPeekError):
    """Structured tool output could not be parsed."""


class CacheIOFailure(MediaPeekError):
    """The cache directory or a cache file could not be read or written."""


class CacheMiss(MediaPeekError, KeyError):
    """No cache record exists for the requested content identifier."""


class StateFailure(MediaPeekError, LookupError):
    """A playlist index no longer refers to an entry."""


__all__ = [
    "MediaPeekError",
    "ToolInvocationFailure",
    "ToolTimedOut",
    "ParseFailure",
    "CacheIOFailure",
    "CacheMiss",
    "StateFailure",
]
