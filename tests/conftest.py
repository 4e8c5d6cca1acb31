import json
import os
import shutil
import subprocess
from pathlib import Path

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from mediapeek.core.config import get_settings
from mediapeek.core.errors import ToolInvocationFailure, ToolTimedOut
from mediapeek.ingest import tools
from mediapeek.main import create_app

FIXTURES = Path(__file__).parent / "fixtures"


def _load_probe_fixture(name: str) -> dict:
    return json.loads((FIXTURES / "ffprobe_json" / name).read_text())


@pytest.fixture()
def probe_fixture():
    return _load_probe_fixture


@pytest.fixture(autouse=True)
def configure_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("MEDIAPEEK_ENVIRONMENT", "test")
    monkeypatch.setenv("MEDIAPEEK_LOG_LEVEL", "debug")
    monkeypatch.setenv("MEDIAPEEK_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("MEDIAPEEK_FFPROBE_PATH", "ffprobe")
    monkeypatch.setenv("MEDIAPEEK_FFMPEG_PATH", "ffmpeg")
    for name in ("MEDIAPEEK_ENV", "MEDIAPEEK_CACHE", "MEDIAPEEK_TOOL_TIMEOUT_S", "MEDIAPEEK_PROBE_ON_CACHE_HIT"):
        monkeypatch.delenv(name, raising=False)

    get_settings.cache_clear()
    tools.binary_version.cache_clear()
    yield
    tools.binary_version.cache_clear()
    get_settings.cache_clear()


@pytest.fixture()
def settings():
    return get_settings()


class FakeToolbox:
    """Stands in for ffprobe/ffmpeg by answering from registered fixtures.

    ffprobe returns the JSON registered for the probed path. ffmpeg writes a
    real JPEG (encoded with OpenCV) to the output argument for any path with a
    registered probe payload. Unregistered paths behave like unreadable files.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.probes: dict[str, object] = {}
        self.frame_sizes: dict[str, tuple[int, int]] = {}
        self.hanging: set[str] = set()
        self.blank_frames: set[str] = set()
        self.version_line = "ffmpeg version 6.1.1 Copyright (c) 2000-2023 the FFmpeg developers"

    def register(self, path, payload, *, frame_size: tuple[int, int] = (640, 360)) -> str:
        key = os.path.abspath(os.fspath(path))
        self.probes[key] = payload
        self.frame_sizes[key] = frame_size
        return key

    def count(self, tool: str) -> int:
        return sum(1 for command in self.calls if Path(command[0]).name == tool)

    def __call__(self, command, *, timeout=None, text=True):
        command = [str(part) for part in command]
        self.calls.append(command)
        tool = Path(command[0]).name
        if len(command) == 2 and command[1] == "-version":
            return subprocess.CompletedProcess(command, 0, stdout=f"{self.version_line}\nbuilt with gcc\n", stderr="")
        if tool == "ffprobe":
            return self._probe(command, timeout)
        if tool == "ffmpeg":
            return self._ffmpeg(command, timeout)
        raise ToolInvocationFailure(tool, "could not be started: [Errno 2] No such file or directory", command=command)

    def _probe(self, command, timeout):
        path = command[-1]
        if path in self.hanging:
            raise ToolTimedOut("ffprobe", f"timed out after {timeout}s", command=command)
        payload = self.probes.get(path)
        if payload is None:
            raise ToolInvocationFailure(
                "ffprobe",
                "exited with status 1",
                returncode=1,
                stderr=f"{path}: Invalid data found when processing input",
                command=command,
            )
        stdout = payload if isinstance(payload, (str, bytes)) else json.dumps(payload)
        return subprocess.CompletedProcess(command, 0, stdout=stdout, stderr="")

    def _ffmpeg(self, command, timeout):
        source = command[command.index("-i") + 1]
        output = Path(command[-1])
        if source in self.hanging:
            raise ToolTimedOut("ffmpeg", f"timed out after {timeout}s", command=command)
        if source not in self.probes:
            raise ToolInvocationFailure(
                "ffmpeg",
                "exited with status 1",
                returncode=1,
                stderr=f"{source}: Invalid data found when processing input",
                command=command,
            )
        if source in self.blank_frames:
            return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

        width, height = self.frame_sizes[source]
        if "-vf" in command:
            scale = command[command.index("-vf") + 1]
            target_width = int(scale.split("=", 1)[1].split(":", 1)[0])
            height = int(round(target_width * height / width / 2.0)) * 2
            width = target_width
        if output.suffix.lower() in {".jpg", ".jpeg", ".png"}:
            frame = np.zeros((height, width, 3), dtype=np.uint8)
            frame[:, :, 1] = 160
            if not cv2.imwrite(str(output), frame):
                raise ToolInvocationFailure("ffmpeg", "could not write output", returncode=1, command=command)
        else:
            output.write_bytes(b"\x00\x00\x00\x18ftypmp42")
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")


@pytest.fixture()
def toolbox(monkeypatch) -> FakeToolbox:
    fake = FakeToolbox()
    monkeypatch.setattr(tools, "run_tool", fake)
    return fake


@pytest.fixture()
def client(toolbox):
    app = create_app()
    with TestClient(app) as client:
        yield client


@pytest.fixture(scope="session")
def generated_video_file(tmp_path_factory) -> Path:
    """
    Generates a small, valid MP4 video file for testing in a temporary directory.
    """
    if shutil.which("ffmpeg") is None:
        pytest.skip("ffmpeg not installed")
    video_path = tmp_path_factory.mktemp("data") / "test_video.mp4"

    # 2 seconds so the default 1s sample offset lands inside the file
    command = [
        "ffmpeg",
        "-f", "lavfi",
        "-i", "testsrc=size=640x360:rate=30",
        "-t", "2",
        "-pix_fmt", "yuv420p",
        str(video_path)
    ]
    subprocess.run(command, check=True, capture_output=True)
    return video_path
