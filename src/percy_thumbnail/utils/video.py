import logging
from typing import Any

import ffmpeg
import numpy as np
from PIL import Image
from pydantic import BaseModel, Field

from percy_thumbnail.errors import LoadError

logger: logging.Logger = logging.getLogger(__name__)


class VideoInfo(BaseModel):
    """Video information extracted from ffprobe."""

    width: int = Field(..., gt=0, description="Video width in pixels")
    height: int = Field(..., gt=0, description="Video height in pixels")
    pix_fmt: str = Field("unknown", description="Pixel format (e.g., yuv420p)")
    fps: float = Field(0.0, ge=0, description="Frames per second")
    duration: float = Field(..., ge=0, description="Duration in seconds")


def _input_kwargs(headers: dict[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    # ffmpeg expects CRLF-terminated header lines for http inputs
    return {"headers": "".join(f"{key}: {value}\r\n" for key, value in headers.items())}


def parse_frame_rate(rate: Any) -> float:
    """Parse ffprobe's r_frame_rate ("30000/1001", "25", "0/0")."""
    if isinstance(rate, str) and '/' in rate:
        num, denom = map(int, rate.split('/'))
        return num / denom if denom else 0.0
    return float(rate)


def get_video_info(source: str, headers: dict[str, str] | None = None) -> VideoInfo:
    """Probe the first video stream of a file or URL.

    Raises:
        LoadError: If ffprobe fails or the source has no usable video stream.
    """
    try:
        probe = ffmpeg.probe(source, select_streams='v:0', **_input_kwargs(headers))
    except FileNotFoundError as e:
        raise LoadError("ffprobe not found", "This environment cannot decode the video.") from e
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors='ignore').strip() if e.stderr else str(e)
        logger.error(f"Error probing video {source}: {stderr}")
        raise LoadError("probe failed", "Failed to load the video. Please try again.") from e

    streams = probe.get('streams') or []
    if not streams:
        raise LoadError("no video stream", "The file does not contain a playable video.")
    stream: Any = streams[0]

    # Containers like webm only report duration at the format level
    duration = stream.get('duration') or probe.get('format', {}).get('duration') or 0

    try:
        video_info = VideoInfo(
            width=stream['width'],
            height=stream['height'],
            pix_fmt=stream.get('pix_fmt', 'unknown'),
            fps=parse_frame_rate(stream.get('r_frame_rate', '0/0')),
            duration=float(duration),
        )
    except (KeyError, ValueError) as e:
        raise LoadError("unreadable metadata", "Failed to load the video. Please try again.") from e

    logger.info(
        f"Video detected: {video_info.width}x{video_info.height}, "
        f"{video_info.pix_fmt}, {video_info.fps:.2f} fps, {video_info.duration:.2f}s"
    )
    return video_info


def decode_frame_at(
    source: str,
    timestamp: float,
    video_info: VideoInfo,
    headers: dict[str, str] | None = None,
) -> Image.Image:
    """Decode the single frame shown at `timestamp` as an RGB image.

    Raises:
        LoadError: If ffmpeg fails or returns no complete frame.
    """
    try:
        out, _ = (
            ffmpeg
            .input(source, ss=max(0.0, timestamp), **_input_kwargs(headers))
            .output('pipe:', vframes=1, format='rawvideo', pix_fmt='rgb24')
            .run(capture_stdout=True, capture_stderr=True)
        )
    except FileNotFoundError as e:
        raise LoadError("ffmpeg not found", "This environment cannot decode the video.") from e
    except ffmpeg.Error as e:
        logger.error(f"FFmpeg failed: {e.stderr.decode(errors='ignore') if e.stderr else 'Unknown error'}")
        raise LoadError("decode failed", "Failed to decode the video frame.") from e

    frame_size = video_info.width * video_info.height * 3
    if len(out) < frame_size:
        raise LoadError("no frame decoded", f"No frame available at {timestamp:.2f}s.")

    frame = np.frombuffer(out[:frame_size], dtype=np.uint8).reshape((video_info.height, video_info.width, 3))
    return Image.fromarray(frame)
