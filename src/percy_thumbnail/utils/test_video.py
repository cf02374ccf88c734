from unittest.mock import patch

import ffmpeg
import numpy as np
import pytest

from percy_thumbnail.errors import LoadError
from percy_thumbnail.utils.video import VideoInfo, decode_frame_at, get_video_info, parse_frame_rate

PROBE = {
    "streams": [{
        "width": 1920,
        "height": 1080,
        "pix_fmt": "yuv420p",
        "r_frame_rate": "30000/1001",
        "duration": "93.5",
    }],
    "format": {"duration": "94.0"},
}


@pytest.mark.parametrize("rate, expected", [("25", 25.0), ("30000/1001", 29.97), ("0/0", 0.0)])
def test_parse_frame_rate(rate, expected):
    assert parse_frame_rate(rate) == pytest.approx(expected, abs=0.01)


def test_get_video_info():
    with patch("ffmpeg.probe", return_value=PROBE) as probe:
        info = get_video_info("https://api.example.com/videos/v1/stream")
    assert (info.width, info.height, info.duration) == (1920, 1080, 93.5)
    assert info.fps == pytest.approx(29.97, abs=0.01)
    probe.assert_called_once_with("https://api.example.com/videos/v1/stream", select_streams="v:0")


def test_get_video_info_uses_format_duration_and_headers():
    probe_data = {"streams": [{"width": 640, "height": 360}], "format": {"duration": "12.0"}}
    with patch("ffmpeg.probe", return_value=probe_data) as probe:
        info = get_video_info("movie.webm", headers={"Authorization": "Bearer x"})
    assert info.duration == 12.0
    assert probe.call_args.kwargs["headers"] == "Authorization: Bearer x\r\n"


@pytest.mark.parametrize("side_effect, reason", [
    (ffmpeg.Error("ffprobe", b"", b"Server returned 404"), "probe failed"),
    (FileNotFoundError("ffprobe"), "ffprobe not found"),
])
def test_get_video_info_failures(side_effect, reason):
    with patch("ffmpeg.probe", side_effect=side_effect):
        with pytest.raises(LoadError) as exc_info:
            get_video_info("movie.mp4")
    assert exc_info.value.reason == reason


def test_get_video_info_without_video_stream():
    with patch("ffmpeg.probe", return_value={"streams": [], "format": {}}):
        with pytest.raises(LoadError, match="no video stream"):
            get_video_info("song.mp3")


def test_decode_frame_at():
    info = VideoInfo(width=4, height=2, duration=10.0)
    raw = np.arange(4 * 2 * 3, dtype=np.uint8).tobytes()
    with patch("ffmpeg.input") as mock_input:
        mock_input.return_value.output.return_value.run.return_value = (raw, b"")
        img = decode_frame_at("movie.mp4", 3.5, info)

    assert img.size == (4, 2)
    assert img.getpixel((1, 0)) == (3, 4, 5)
    mock_input.assert_called_once_with("movie.mp4", ss=3.5)
    mock_input.return_value.output.assert_called_once_with("pipe:", vframes=1, format="rawvideo", pix_fmt="rgb24")


def test_decode_frame_at_past_the_end():
    info = VideoInfo(width=4, height=2, duration=10.0)
    with patch("ffmpeg.input") as mock_input:
        mock_input.return_value.output.return_value.run.return_value = (b"", b"")
        with pytest.raises(LoadError, match="no frame decoded"):
            decode_frame_at("movie.mp4", 20.0, info)
