"""Core logic for capture: run a headless capture session and write the result."""

import asyncio
import logging
import tempfile
from pathlib import Path

from percy_thumbnail.capture.preview import PreviewStore
from percy_thumbnail.capture.screenshot import ScreenshotClient
from percy_thumbnail.capture.session import ThumbnailCapture
from percy_thumbnail.errors import CaptureError
from percy_thumbnail.models.capture import (
    AuthContext,
    CapturedImage,
    CaptureSettings,
    SelectionResult,
    SessionState,
    UploadedFile,
)

logger = logging.getLogger(__name__)


def _log_selection(image: CapturedImage | None, preview_url: str | None) -> None:
    if image is None:
        logger.debug("Selection cleared")
    else:
        logger.debug(f"Selected {image.file_name} ({image.source.value}) -> {preview_url}")


async def run_capture(
    video_id: str,
    settings: CaptureSettings,
    screenshot_client: ScreenshotClient | None,
    preview_store: PreviewStore,
    source: str | None = None,
    at: float | None = None,
    server: bool = False,
    upload: Path | None = None,
) -> SelectionResult:
    """Drive one capture session the way a user would.

    Args:
        video_id: Video on the remote API.
        settings: Capture parameters.
        screenshot_client: Server-side fallback, or None to disable it.
        preview_store: Where preview files are written.
        source: Video file or URL; defaults to the API stream endpoint.
        at: Timestamp to capture; defaults to the session's initial position.
        server: Ask the API for the frame instead of decoding it locally.
        upload: Select this image file instead of capturing.

    Raises:
        ThumbnailError: The error that left the session without a selection.
    """
    session = ThumbnailCapture(
        video_id,
        on_thumbnail_select=_log_selection,
        on_close=lambda: logger.debug("Capture session closed"),
        settings=settings,
        screenshot_client=screenshot_client,
        preview_store=preview_store,
    )

    if upload is not None:
        image = await session.select_uploaded_image(UploadedFile.from_path(upload))
    else:
        session.initialize(source)
        timestamp = at
        if at is not None and session.state is SessionState.READY:
            timestamp = session.seek(at)
            session.process_events()

        if server or session.state is SessionState.ERROR:
            image = await session.capture_frame_server_side(timestamp if timestamp is not None else session.current_time)
        else:
            image = await session.capture()

    if image is None:
        error = session.last_error or CaptureError("no image", "No thumbnail was selected.")
        session.close()
        raise error

    return session.confirm_selection()


def capture_thumbnail(
    video_id: str,
    output: str,
    api_url: str,
    token: str | None,
    source: str | None = None,
    at: float | None = None,
    server: bool = False,
    upload: str | None = None,
    max_width: int = 1280,
    overwrite: bool = False,
) -> CapturedImage:
    """Capture a thumbnail for `video_id` and write it to `output`."""
    output_path = Path(output)
    if output_path.exists() and not overwrite:
        raise FileExistsError(f"Output file already exists: {output}. Use --overwrite to replace.")

    upload_path = None
    if upload is not None:
        upload_path = Path(upload)
        if not upload_path.is_file():
            raise FileNotFoundError(f"Upload file does not exist: {upload}")

    settings = CaptureSettings(api_base_url=api_url, max_frame_width=max_width)
    screenshot_client = ScreenshotClient(api_url, AuthContext(token=token), timeout=settings.request_timeout)

    with tempfile.TemporaryDirectory(prefix="percy-preview-") as tmpdir:
        result = asyncio.run(run_capture(
            video_id,
            settings,
            screenshot_client,
            PreviewStore(Path(tmpdir)),
            source=source,
            at=at,
            server=server,
            upload=upload_path,
        ))

    image = result.image
    assert image is not None
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(image.data)
    logger.info(f"Saved {image.source.value} thumbnail ({image.size:,} bytes) to {output_path}")
    return image


def main(
    video_id: str,
    output: str,
    api_url: str,
    token: str | None,
    source: str | None = None,
    at: float | None = None,
    server: bool = False,
    upload: str | None = None,
    max_width: int = 1280,
    overwrite: bool = False,
) -> CapturedImage:
    """Entry point called from cli.py."""
    return capture_thumbnail(video_id, output, api_url, token, source, at, server, upload, max_width, overwrite)
