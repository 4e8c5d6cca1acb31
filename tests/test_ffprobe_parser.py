from __future__ import annotations

import pytest

from mediapeek.core.errors import ParseFailure
from mediapeek.domain.media import MediaKind
from mediapeek.ingest import PARSER_VERSION
from mediapeek.ingest.ffprobe_parser import (
    classify_kind,
    decode_ffprobe_output,
    parse_ffprobe_json,
    parse_rational,
)


def test_parse_video_with_audio(probe_fixture):
    parsed = parse_ffprobe_json(probe_fixture("mp4_h264_aac.json"), "/media/clip.mp4")

    assert parsed.kind is MediaKind.video
    assert parsed.has_video and parsed.has_audio
    metadata = parsed.metadata
    assert metadata.parser_version == PARSER_VERSION
    assert metadata.duration_s == pytest.approx(12.5)
    assert metadata.size_bytes == 7_250_000
    assert metadata.container == "mov,mp4,m4a,3gp,3g2,mj2"
    # The video stream's own bitrate wins over the container figure.
    assert metadata.bitrate_bps == 4_500_000

    video = metadata.details.video
    assert video.codec == "h264"
    assert (video.width_px, video.height_px) == (1920, 1080)
    assert video.frame_rate_fps == pytest.approx(30.0)
    assert video.pixel_format == "yuv420p"
    assert video.profile == "High 40"

    audio = metadata.details.audio
    assert audio is not None
    assert audio.codec == "aac"
    assert audio.sample_rate_hz == 48000
    assert audio.channels == 2
    assert audio.channel_layout == "stereo"
    assert audio.sample_format == "fltp"


def test_parse_video_without_audio_uses_container_bitrate(probe_fixture):
    parsed = parse_ffprobe_json(probe_fixture("mp4_h264_no_audio.json"), "/media/silent.mp4")

    assert parsed.kind is MediaKind.video
    assert parsed.has_audio is False
    assert parsed.metadata.details.audio is None
    assert parsed.metadata.bitrate_bps == 2_095_000
    assert parsed.metadata.details.video.frame_rate_fps == pytest.approx(29.97)
    # Unknown levels are reported as -99 and left off.
    assert parsed.metadata.details.video.profile == "Main"


def test_parse_falls_back_to_real_frame_rate_and_zero_duration(probe_fixture):
    parsed = parse_ffprobe_json(probe_fixture("mkv_vfr.json"), "/media/sample.mkv")

    metadata = parsed.metadata
    assert metadata.duration_s == 0.0
    assert metadata.bitrate_bps == 0
    assert metadata.container == "matroska,webm"
    assert metadata.details.video.frame_rate_fps == pytest.approx(23.976)
    assert metadata.details.audio.channel_layout == "5.1"


def test_parse_unknown_frame_rate_is_none(probe_fixture):
    raw = probe_fixture("mkv_vfr.json")
    raw["streams"][0]["r_frame_rate"] = "0/0"

    parsed = parse_ffprobe_json(raw, "/media/sample.mkv")

    assert parsed.metadata.details.video.frame_rate_fps is None


def test_parse_audio_only(probe_fixture):
    parsed = parse_ffprobe_json(probe_fixture("mp3_audio.json"), "/media/voice.mp3")

    assert parsed.kind is MediaKind.audio
    metadata = parsed.metadata
    assert metadata.duration_s == pytest.approx(183.2)
    assert metadata.bitrate_bps == 192_000
    audio = metadata.details.audio
    assert audio.codec == "mp3"
    assert audio.sample_rate_hz == 44100
    assert audio.channels == 1
    assert audio.channel_layout == "mono"


def test_parse_image(probe_fixture):
    parsed = parse_ffprobe_json(probe_fixture("png_image.json"), "/media/still.png")

    assert parsed.kind is MediaKind.image
    details = parsed.metadata.details
    assert details.kind == "Image"
    assert details.codec == "png"
    assert (details.width_px, details.height_px) == (800, 600)
    assert details.pixel_format == "rgba"
    assert parsed.metadata.duration_s == 0.0


def test_parse_prefers_default_disposition_then_channel_count(probe_fixture):
    parsed = parse_ffprobe_json(probe_fixture("multi_stream.json"), "/media/broadcast.ts")

    details = parsed.metadata.details
    assert (details.video.width_px, details.video.height_px) == (1280, 720)
    assert details.video.frame_rate_fps == pytest.approx(50.0)
    assert details.audio.codec == "eac3"
    assert details.audio.channels == 6
    assert parsed.metadata.bitrate_bps == 6_990_506


def test_parse_empty_payload_yields_zeroed_video():
    parsed = parse_ffprobe_json({}, "/media/unknown.bin")

    assert parsed.kind is MediaKind.video
    assert parsed.metadata.duration_s == 0.0
    assert parsed.metadata.details.video.codec == ""


@pytest.mark.parametrize(
    "raw",
    [
        {"format": ["mp4"], "streams": []},
        {"format": {}, "streams": {"0": {}}},
    ],
)
def test_parse_rejects_malformed_sections(raw):
    with pytest.raises(ParseFailure):
        parse_ffprobe_json(raw, "/media/clip.mp4")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("30/1", 30.0),
        ("30000/1001", 29.97),
        ("24000/1001", 23.976),
        ("25", 25.0),
        ("0/0", None),
        ("5/0", None),
        ("N/A", None),
        ("", None),
        (None, None),
        ("abc/def", None),
    ],
)
def test_parse_rational(value, expected):
    if expected is None:
        assert parse_rational(value) is None
    else:
        assert parse_rational(value) == pytest.approx(expected)


@pytest.mark.parametrize(
    ("path", "has_video", "has_audio", "expected"),
    [
        ("/m/photo.JPG", True, False, MediaKind.image),
        ("/m/scan.tif", True, False, MediaKind.image),
        ("/m/picture.webp", False, False, MediaKind.image),
        ("/m/song.flac", False, True, MediaKind.audio),
        ("/m/movie.mov", True, True, MediaKind.video),
        ("/m/animation.gif", True, False, MediaKind.video),
        ("/m/mystery", False, False, MediaKind.video),
    ],
)
def test_classify_kind(path, has_video, has_audio, expected):
    assert classify_kind(path, has_video=has_video, has_audio=has_audio) is expected


@pytest.mark.parametrize("stdout", ["", "not json", "[1, 2, 3]", "null"])
def test_decode_rejects_non_object_output(stdout):
    with pytest.raises(ParseFailure):
        decode_ffprobe_output(stdout)
