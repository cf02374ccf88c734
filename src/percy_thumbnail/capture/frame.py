"""Scale a decoded frame and encode it as PNG."""

import io

from PIL import Image

from percy_thumbnail.errors import CaptureError
from percy_thumbnail.models.capture import MAX_FRAME_WIDTH


def frame_dimensions(video_width: int, video_height: int, max_width: int = MAX_FRAME_WIDTH) -> tuple[int, int]:
    """Target size keeping the source aspect ratio, width capped at `max_width`."""
    if video_width <= 0 or video_height <= 0:
        raise CaptureError("frame unavailable", "Video not fully loaded. Please wait and try again.")
    aspect_ratio = video_width / video_height
    width = min(max_width, video_width)
    # Half-up rounding, not banker's rounding
    height = max(1, int(width / aspect_ratio + 0.5))
    return width, height


def encode_frame_png(frame: Image.Image, width: int, height: int) -> bytes:
    """Draw `frame` at width x height and encode the result as PNG.

    Raises:
        CaptureError: If drawing or encoding fails.
    """
    try:
        canvas = frame.convert("RGB")
        if canvas.size != (width, height):
            canvas = canvas.resize((width, height), Image.Resampling.LANCZOS)
    except (OSError, ValueError) as e:
        raise CaptureError("draw failed", "Failed to capture frame. Video may not be fully loaded.") from e

    buffer = io.BytesIO()
    try:
        canvas.save(buffer, format="PNG")
    except (OSError, ValueError) as e:
        raise CaptureError("encode failed", "Failed to create image from video frame.") from e

    data = buffer.getvalue()
    if not data:
        raise CaptureError("encode failed", "Failed to create image from video frame.")
    return data
