"""Single entry point for every ffprobe/ffmpeg subprocess call.

Probe, thumbnail and export code never touch :mod:`subprocess` directly, which
keeps timeouts and failure mapping in one place and lets tests swap in a fake
runner by patching :func:`run_tool`.
"""

from __future__ import annotations

import os
import subprocess
import sys
from functools import lru_cache
from typing import Any, Optional, Sequence

from mediapeek.core.errors import ToolInvocationFailure, ToolTimedOut


def run_tool(
    command: Sequence[str],
    *,
    timeout: Optional[float] = None,
    text: bool = True,
) -> subprocess.CompletedProcess:
    """Run ``command`` to completion and return the finished process.

    Args:
        command: Executable followed by its arguments.
        timeout: Optional wall-clock limit in seconds.
        text: Decode stdout/stderr as UTF-8 text, replacing undecodable bytes.

    Returns:
        The completed process (exit code 0 only).

    Raises:
        ToolInvocationFailure: The executable is missing or exited non-zero.
        ToolTimedOut: ``timeout`` elapsed before the tool finished.
    """
    tool = os.path.basename(command[0]) if command else "<empty>"
    run_kwargs: dict[str, Any] = dict(stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=text, timeout=timeout)
    if text:
        # ffmpeg emits UTF-8 regardless of the platform locale.
        run_kwargs.update(encoding="utf-8", errors="replace")
    if sys.platform == "win32":
        run_kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW
    try:
        return subprocess.run(list(command), check=True, **run_kwargs)
    except subprocess.TimeoutExpired as exc:
        raise ToolTimedOut(tool, f"timed out after {timeout}s", command=command) from exc
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.decode(errors="replace") if isinstance(exc.stderr, bytes) else (exc.stderr or "")
        raise ToolInvocationFailure(
            tool,
            f"exited with status {exc.returncode}",
            returncode=exc.returncode,
            stderr=stderr.strip(),
            command=command,
        ) from exc
    except OSError as exc:
        raise ToolInvocationFailure(tool, f"could not be started: {exc}", command=command) from exc


@lru_cache(maxsize=4)
def binary_version(executable: str) -> str:
    """Get the first line of ``<executable> -version``, or "unknown"."""
    try:
        proc = run_tool((executable, "-version"), timeout=10)
    except ToolInvocationFailure:
        return "unknown"
    output = proc.stdout.strip() or proc.stderr.strip()
    if not output:
        return "unknown"
    return output.splitlines()[0].strip()


__all__ = ["run_tool", "binary_version"]
