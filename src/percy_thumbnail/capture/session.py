"""
Thumbnail capture session: seek through a video, grab the current frame and
fall back to a server screenshot or a manual upload when that fails.
"""

import asyncio
import logging
import math
import mimetypes
import time
from typing import Callable, Optional

from percy_thumbnail.capture.element import FfmpegVideoElement
from percy_thumbnail.capture.events import (
    CanPlay,
    LoadStart,
    MediaError,
    MediaEvent,
    MediaEventChannel,
    MetadataLoaded,
    Seeked,
    VideoElement,
)
from percy_thumbnail.capture.frame import encode_frame_png, frame_dimensions
from percy_thumbnail.capture.preview import PreviewSlot, PreviewStore
from percy_thumbnail.capture.screenshot import FALLBACK_MESSAGE, ScreenshotClient
from percy_thumbnail.capture.upload import decode_check, validate_upload
from percy_thumbnail.errors import CaptureError, LoadError, NetworkError, ThumbnailError, ValidationError
from percy_thumbnail.models.capture import (
    CapturedImage,
    CaptureSettings,
    ControlState,
    ImageSource,
    Notice,
    SelectionResult,
    SessionState,
    Tab,
    UploadedFile,
)

logger = logging.getLogger(__name__)

ThumbnailCallback = Callable[[Optional[CapturedImage], Optional[str]], None]
ElementFactory = Callable[[str, MediaEventChannel], VideoElement]


def _ffmpeg_element(source: str, channel: MediaEventChannel) -> VideoElement:
    return FfmpegVideoElement(source, channel)


class ThumbnailCapture:
    """One thumbnail-selection dialog, from open to close.

    Args:
        video_id: Identifier of the video on the remote API.
        on_thumbnail_select: Called with (image, preview_url) whenever the
            selection changes, and with (None, None) when it is cleared.
        on_close: Called once when the session is confirmed or cancelled.
        initial_thumbnail: URL of the video's current thumbnail, shown until
            replaced. Not owned by the session.
        settings: Capture parameters.
        screenshot_client: Enables the server-side fallback when given.
        preview_store: Where preview references are created.
        element_factory: Builds the media element for a source URL.
    """

    def __init__(
        self,
        video_id: str,
        on_thumbnail_select: ThumbnailCallback,
        on_close: Callable[[], None],
        *,
        initial_thumbnail: str | None = None,
        settings: CaptureSettings | None = None,
        screenshot_client: ScreenshotClient | None = None,
        preview_store: PreviewStore | None = None,
        element_factory: ElementFactory = _ffmpeg_element,
    ):
        self.video_id = video_id
        self.settings = settings or CaptureSettings()
        self.video_source_url: str | None = None
        self.state = SessionState.LOADING
        self.tab = Tab.CAPTURE
        self.current_time = 0.0
        self.duration = 0.0
        self.has_video_error = False
        self.last_error: ThumbnailError | None = None
        self.notices: list[Notice] = []
        self.image: CapturedImage | None = None

        self._on_thumbnail_select = on_thumbnail_select
        self._on_close = on_close
        self._initial_thumbnail = initial_thumbnail
        self._screenshot = screenshot_client
        self._previews = preview_store or PreviewStore()
        self._slot = PreviewSlot()
        self._element_factory = element_factory
        self._element: VideoElement | None = None
        self._channel = MediaEventChannel()

        self._requested_seek: float | None = None
        # Bumped on every selection change and on close; async results from an
        # older generation are discarded
        self._generation = 0
        self._server_capture_pending = False
        self._decode_pending = False
        self._fallback_exhausted = False

        self._handlers: dict[type, Callable] = {
            LoadStart: self._on_load_start,
            MetadataLoaded: self._on_metadata_loaded,
            CanPlay: self._on_can_play,
            Seeked: self._on_seeked,
            MediaError: self._on_media_error,
        }

    # ----------------------------
    # Observable state
    # ----------------------------
    @property
    def channel(self) -> MediaEventChannel:
        return self._channel

    @property
    def is_loading(self) -> bool:
        return self.state is SessionState.LOADING or self._busy

    @property
    def last_error_message(self) -> str | None:
        return self.last_error.user_message if self.last_error else None

    @property
    def preview_url(self) -> str | None:
        handle = self._slot.current
        return handle.url if handle is not None else self._initial_thumbnail

    @property
    def _busy(self) -> bool:
        return self._server_capture_pending or self._decode_pending

    @property
    def controls(self) -> ControlState:
        open_ = self.state is not SessionState.CLOSED
        ready = self.state is SessionState.READY and not self._busy
        return ControlState(
            seek=ready,
            capture=ready,
            server_capture=(
                self._screenshot is not None
                and self.state in (SessionState.READY, SessionState.ERROR)
                and not self._busy
            ),
            upload=open_ and not self._decode_pending,
            confirm=open_ and self.preview_url is not None and not self._busy,
        )

    # ----------------------------
    # Media lifecycle
    # ----------------------------
    def initialize(self, video_source_url: str | None = None) -> None:
        """Attach a media element to the source and start loading it."""
        if self.state is SessionState.CLOSED:
            raise RuntimeError("Capture session is closed")
        self.video_source_url = video_source_url or self.settings.stream_url(self.video_id)
        logger.info(f"Loading video {self.video_id} from {self.video_source_url}")
        self._element = self._element_factory(self.video_source_url, self._channel)
        self._load()

    def retry_load(self) -> None:
        """Reload after a load failure. Only valid in the error state."""
        if self.state is not SessionState.ERROR or self._element is None:
            logger.warning(f"Retry ignored in state {self.state.value}")
            return
        self.last_error = None
        self._load()

    def _load(self) -> None:
        assert self._element is not None
        self._transition(SessionState.LOADING)
        self.has_video_error = False
        self._element.load()
        self.process_events()

    def process_events(self) -> None:
        """Apply every pending media event, one transition per event."""
        for event in self._channel.drain():
            if self.state is SessionState.CLOSED:
                logger.debug(f"Discarding {type(event).__name__} after close")
                continue
            self._handlers[type(event)](event)

    def dispatch(self, event: MediaEvent) -> None:
        """Post an event and apply it immediately."""
        self._channel.post(event)
        self.process_events()

    def _on_load_start(self, event: LoadStart) -> None:
        self._transition(SessionState.LOADING)
        self.has_video_error = False

    def _on_metadata_loaded(self, event: MetadataLoaded) -> None:
        self.duration = event.duration
        logger.debug(f"Video metadata loaded, duration: {self.duration:.2f}s")
        if self.duration > 0:
            # Frame zero is often black; start a little way in
            self._request_seek(self.duration * self.settings.initial_position_ratio)
        # Still loading until a frame can be rendered

    def _on_can_play(self, event: CanPlay) -> None:
        if self.state is SessionState.LOADING:
            self._transition(SessionState.READY)

    def _on_seeked(self, event: Seeked) -> None:
        if self._requested_seek is None or not math.isclose(event.time, self._requested_seek, abs_tol=1e-6):
            logger.debug(f"Ignoring stale seek result at {event.time:.2f}s")
            return
        self.current_time = event.time
        self._requested_seek = None

    def _on_media_error(self, event: MediaError) -> None:
        self._transition(SessionState.ERROR)
        self.has_video_error = True
        self._fail(LoadError("load failed", event.message), "Error loading video")

    # ----------------------------
    # Seeking
    # ----------------------------
    def seek(self, time_seconds: float) -> float:
        """Move to `time_seconds`, clamped to [0, duration]. Returns the new time."""
        if not self.controls.seek:
            logger.debug(f"Seek ignored in state {self.state.value}")
            return self.current_time
        return self._request_seek(time_seconds)

    def nudge(self, delta_seconds: float) -> float:
        """Relative seek, e.g. -10, -1, +1, +10 seconds."""
        return self.seek(self.current_time + delta_seconds)

    def _request_seek(self, time_seconds: float) -> float:
        assert self._element is not None
        target = min(max(0.0, time_seconds), self.duration)
        self._requested_seek = target
        self.current_time = target
        self._element.seek(target)
        return target

    # ----------------------------
    # Capture
    # ----------------------------
    def capture_frame(self) -> CapturedImage | None:
        """Grab the current frame as a PNG. Returns None and records the error on failure."""
        if not self.controls.capture:
            self._fail(CaptureError("not ready", "Video is not ready for capture yet."), "Capture unavailable")
            return None
        assert self._element is not None

        self._transition(SessionState.CAPTURING)
        self.last_error = None
        try:
            width, height = frame_dimensions(
                self._element.video_width, self._element.video_height, self.settings.max_frame_width,
            )
            frame = self._element.grab_frame()
            data = encode_frame_png(frame, width, height)
        except CaptureError as e:
            self._fail(e, "Capture failed")
            return None
        finally:
            if self.state is SessionState.CAPTURING:
                self._transition(SessionState.READY)

        image = CapturedImage(
            data=data,
            file_name=self._generated_file_name(),
            source=ImageSource.CANVAS,
            width=width,
            height=height,
        )
        self._select(image, "Thumbnail captured", "Frame captured successfully. Click Save to apply it to your video.")
        return image

    async def capture(self) -> CapturedImage | None:
        """Canvas capture, falling back once to the server screenshot."""
        image = self.capture_frame()
        if image is not None:
            return image

        error = self.last_error
        if not isinstance(error, CaptureError) or not error.allows_fallback:
            return None
        if self._screenshot is None or self._fallback_exhausted:
            logger.info("No automated fallback left, steering to upload")
            self.tab = Tab.UPLOAD
            return None

        logger.warning(f"Canvas capture failed ({error.reason}), trying server-side screenshot")
        return await self.capture_frame_server_side(self.current_time)

    async def capture_frame_server_side(self, timestamp_seconds: float) -> CapturedImage | None:
        """Ask the API for a rendered frame at `timestamp_seconds`."""
        if self._screenshot is None:
            self._fail(NetworkError("server capture unavailable", FALLBACK_MESSAGE), "Capture failed")
            self.tab = Tab.UPLOAD
            return None
        if not self.controls.server_capture:
            logger.debug(f"Server capture ignored (state={self.state.value}, busy={self._busy})")
            return None

        self._server_capture_pending = True
        self.last_error = None
        generation = self._generation
        try:
            data, (width, height) = await asyncio.to_thread(self._fetch_screenshot, timestamp_seconds)
        except NetworkError as e:
            if self._is_stale(generation):
                logger.info(f"Server capture failed after being superseded: {e.reason}")
                return None
            self._fallback_exhausted = True
            self._fail(
                e,
                "Capture failed",
                "Both client and server-side capture methods failed. Please try uploading an image instead.",
            )
            self.tab = Tab.UPLOAD
            return None
        finally:
            self._server_capture_pending = False

        if self._is_stale(generation):
            logger.info("Discarding server screenshot for a superseded request")
            return None

        image = CapturedImage(
            data=data,
            file_name=self._generated_file_name(),
            source=ImageSource.SERVER,
            width=width,
            height=height,
        )
        self._select(image, "Thumbnail captured", "Frame captured successfully using server-side processing.")
        return image

    def _fetch_screenshot(self, timestamp_seconds: float) -> tuple[bytes, tuple[int, int]]:
        assert self._screenshot is not None
        data = self._screenshot.fetch(self.video_id, timestamp_seconds)
        try:
            size = decode_check(data)
        except ValidationError as e:
            raise NetworkError("invalid screenshot", FALLBACK_MESSAGE) from e
        return data, size

    # ----------------------------
    # Upload
    # ----------------------------
    async def select_uploaded_image(self, file: UploadedFile) -> CapturedImage | None:
        """Validate and select a user-provided image."""
        if self.state is SessionState.CLOSED:
            logger.debug("Upload ignored after close")
            return None
        if self._decode_pending:
            logger.debug(f"Upload of {file.filename} ignored, previous image still decoding")
            return None

        try:
            validate_upload(file, self.settings.max_upload_bytes)
        except ValidationError as e:
            self._fail(e, "Invalid image")
            return None

        self._decode_pending = True
        self.last_error = None
        generation = self._generation
        try:
            width, height = await asyncio.to_thread(decode_check, file.data)
        except ValidationError as e:
            if self._is_stale(generation):
                logger.info(f"Decode of superseded upload {file.filename} failed: {e.reason}")
            else:
                self._fail(e, "Invalid image")
            return None
        finally:
            self._decode_pending = False

        if self._is_stale(generation):
            logger.info(f"Discarding superseded upload {file.filename}")
            return None

        image = CapturedImage(
            data=file.data,
            mime_type=file.content_type,
            file_name=file.filename,
            source=ImageSource.UPLOAD,
            width=width,
            height=height,
        )
        self._select(image, "Thumbnail uploaded", "Image uploaded successfully. Click Save to apply it to your video.")
        return image

    # ----------------------------
    # Selection
    # ----------------------------
    def clear_selection(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        self._generation += 1
        self._slot.clear()
        self.image = None
        self._initial_thumbnail = None
        self._on_thumbnail_select(None, None)

    def confirm_selection(self) -> SelectionResult:
        """Hand the selection to the caller and close.

        The preview reference is transferred to the caller, not released.
        """
        if self.state is SessionState.CLOSED:
            raise RuntimeError("Capture session is closed")
        result = SelectionResult(self.image, self.preview_url)
        if result.preview_url is not None:
            self._on_thumbnail_select(result.image, result.preview_url)
        self._slot.detach()
        self._finish()
        return result

    def close(self) -> None:
        """Cancel: release any preview still held and close."""
        if self.state is SessionState.CLOSED:
            return
        self._slot.clear()
        self._finish()

    def _select(self, image: CapturedImage, title: str, description: str) -> None:
        suffix = mimetypes.guess_extension(image.mime_type) or ".png"
        handle = self._previews.create(image.data, suffix)
        self._generation += 1
        self._slot.replace(handle)
        self.image = image
        self._initial_thumbnail = None
        self._notify(title, description)
        self._on_thumbnail_select(image, handle.url)

    def _finish(self) -> None:
        self._generation += 1
        self._transition(SessionState.CLOSED)
        self._on_close()

    # ----------------------------
    # Helpers
    # ----------------------------
    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation or self.state is SessionState.CLOSED

    def _generated_file_name(self) -> str:
        return f"thumbnail-{self.video_id}-{int(time.time() * 1000)}.png"

    def _transition(self, state: SessionState) -> None:
        if state is not self.state:
            logger.debug(f"Session {self.video_id}: {self.state.value} -> {state.value}")
            self.state = state

    def _notify(self, title: str, description: str, variant: str = "default") -> None:
        notice = Notice(title=title, description=description, variant=variant)
        self.notices.append(notice)
        if variant == "destructive":
            logger.warning(f"{title}: {description}")
        else:
            logger.info(f"{title}: {description}")

    def _fail(self, error: ThumbnailError, title: str, description: str | None = None) -> None:
        self.last_error = error
        logger.debug(f"{type(error).__name__}: {error.reason}")
        self._notify(title, description or error.user_message, "destructive")
