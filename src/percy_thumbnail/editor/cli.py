"""CLI command for update-video."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from percy_thumbnail.capture.upload import decode_check, validate_upload
from percy_thumbnail.editor.main import VideoSettings, update_video
from percy_thumbnail.models.capture import (
    DEFAULT_API_URL,
    AuthContext,
    CapturedImage,
    ImageSource,
    UploadedFile,
)
from percy_thumbnail.utils.cli import cli_error_handler, setup_logging

console = Console()


def load_thumbnail(path: str) -> CapturedImage:
    """Read and validate a thumbnail file the same way an upload is validated."""
    thumbnail_path = Path(path)
    if not thumbnail_path.is_file():
        raise FileNotFoundError(f"Thumbnail file does not exist: {path}")
    file = UploadedFile.from_path(thumbnail_path)
    validate_upload(file)
    width, height = decode_check(file.data)
    return CapturedImage(
        data=file.data,
        mime_type=file.content_type,
        file_name=file.filename,
        source=ImageSource.UPLOAD,
        width=width,
        height=height,
    )


@cli_error_handler
def update_video_command(
    video_id: str = typer.Argument(..., help="ID of the video on the Percy API"),
    title: str = typer.Option(..., "--title", help="Video title"),
    description: str = typer.Option("", "--description", "-d", help="Video description"),
    settings_file: Optional[str] = typer.Option(None, "--settings", help="JSON file with player settings (playerColor, autoPlay, callToAction, ...)"),
    thumbnail: Optional[str] = typer.Option(None, "--thumbnail", help="Image to upload as the new thumbnail (max 5MB)"),
    api_url: str = typer.Option(DEFAULT_API_URL, "--api-url", envvar="PERCY_API_URL", help="Percy API base URL"),
    token: Optional[str] = typer.Option(None, "--token", envvar="PERCY_TOKEN", help="Bearer token for the Percy API"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Update a video's title, description, player settings and thumbnail.

    Sends a multipart PATCH request; the thumbnail is validated like a manual
    upload (image type, 5MB limit, decodable) before anything is sent.
    """
    setup_logging(verbose)

    settings = VideoSettings()
    if settings_file is not None:
        settings_path = Path(settings_file)
        if not settings_path.is_file():
            raise FileNotFoundError(f"Settings file does not exist: {settings_file}")
        settings = VideoSettings.model_validate_json(settings_path.read_text())

    image = load_thumbnail(thumbnail) if thumbnail is not None else None

    updated = update_video(
        api_url,
        AuthContext(token=token),
        video_id,
        title=title,
        description=description,
        settings=settings,
        thumbnail=image,
    )
    thumbnail_url = None
    if isinstance(updated, dict):
        thumbnail_url = updated.get("thumbnailUrl") or updated.get("thumbnail")
    console.print(f"\n[bold green]Success![/bold green] Video {video_id} updated")
    if thumbnail_url:
        console.print(f"[dim]Thumbnail: {thumbnail_url}[/dim]")
