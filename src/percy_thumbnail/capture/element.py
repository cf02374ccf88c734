"""Video element backed by ffmpeg: probes the source and decodes single frames."""

import logging

from PIL import Image

from percy_thumbnail.capture.events import (
    CanPlay,
    LoadStart,
    MediaError,
    MediaEventChannel,
    MetadataLoaded,
    Seeked,
)
from percy_thumbnail.errors import CaptureError, LoadError
from percy_thumbnail.utils.video import VideoInfo, decode_frame_at, get_video_info

logger = logging.getLogger(__name__)


class FfmpegVideoElement:
    """Media element for a file path or URL.

    Mirrors a browser <video>: `load()` posts LoadStart, MetadataLoaded and
    CanPlay (or MediaError), `seek()` posts Seeked once the new frame is decoded.
    """

    def __init__(self, source: str, channel: MediaEventChannel, headers: dict[str, str] | None = None):
        self.source = source
        self.headers = headers
        self.duration = 0.0
        self.current_time = 0.0
        self.video_width = 0
        self.video_height = 0
        self._channel = channel
        self._info: VideoInfo | None = None
        self._frame: Image.Image | None = None

    def load(self) -> None:
        self._channel.post(LoadStart())
        self._info = None
        self._frame = None
        self.video_width = self.video_height = 0
        self.duration = 0.0

        try:
            self._info = get_video_info(self.source, self.headers)
        except LoadError as e:
            self._channel.post(MediaError(e.user_message))
            return

        self.duration = self._info.duration
        self._channel.post(MetadataLoaded(self.duration))

        try:
            self._decode(self.current_time)
        except LoadError as e:
            self._channel.post(MediaError(e.user_message))
            return
        self._channel.post(CanPlay())

    def seek(self, time: float) -> None:
        self.current_time = time
        if self._info is not None:
            try:
                self._decode(time)
            except LoadError as e:
                # Keep the element usable; capture will report the missing frame
                logger.warning(f"Seek to {time:.2f}s left no decoded frame: {e.user_message}")
                self._frame = None
                self.video_width = self.video_height = 0
        self._channel.post(Seeked(time))

    def grab_frame(self) -> Image.Image:
        if self._frame is None:
            raise CaptureError("frame unavailable", "Video not fully loaded. Please wait and try again.")
        return self._frame

    def _decode(self, time: float) -> None:
        assert self._info is not None
        self._frame = decode_frame_at(self.source, time, self._info, self.headers)
        self.video_width, self.video_height = self._frame.size
        logger.debug(f"Decoded frame at {time:.2f}s ({self.video_width}x{self.video_height})")
