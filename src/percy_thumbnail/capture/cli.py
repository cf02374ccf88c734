"""CLI command for capture."""

from typing import Optional

import typer
from rich.console import Console

from percy_thumbnail.capture.main import main
from percy_thumbnail.models.capture import DEFAULT_API_URL, MAX_FRAME_WIDTH
from percy_thumbnail.utils.cli import cli_error_handler, setup_logging

console = Console()


@cli_error_handler
def capture(
    video_id: str = typer.Argument(..., help="ID of the video on the Percy API"),
    output: str = typer.Argument(..., help="Path to write the thumbnail image"),
    at: Optional[float] = typer.Option(None, "--at", "-t", help="Timestamp in seconds (default: 10% into the video)"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Video file or URL (default: the API stream endpoint)"),
    server: bool = typer.Option(False, "--server", help="Ask the API for a rendered screenshot instead of decoding locally"),
    upload: Optional[str] = typer.Option(None, "--upload", "-u", help="Use this image file instead of capturing a frame"),
    api_url: str = typer.Option(DEFAULT_API_URL, "--api-url", envvar="PERCY_API_URL", help="Percy API base URL"),
    token: Optional[str] = typer.Option(None, "--token", envvar="PERCY_TOKEN", help="Bearer token for the Percy API"),
    max_width: int = typer.Option(MAX_FRAME_WIDTH, "--max-width", help="Maximum thumbnail width in pixels (default: 1280)"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Overwrite output file if it exists"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Capture a thumbnail from a video.

    Grabs the frame at --at (or 10% into the video), scaled to at most 1280px
    wide and encoded as PNG. Falls back once to the API's server-side
    screenshot when local capture fails. Use --upload to pick an image instead.
    """
    setup_logging(verbose)

    image = main(
        video_id=video_id,
        output=output,
        api_url=api_url,
        token=token,
        source=source,
        at=at,
        server=server,
        upload=upload,
        max_width=max_width,
        overwrite=overwrite,
    )
    size = f"{image.width}x{image.height}, " if image.width and image.height else ""
    console.print(
        f"\n[bold green]Success![/bold green] Thumbnail ({size}{image.source.value}) saved to: {output}"
    )
