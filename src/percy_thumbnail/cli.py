"""Console script for percy_thumbnail."""

import typer

from percy_thumbnail.capture.cli import capture
from percy_thumbnail.editor.cli import update_video_command

app = typer.Typer()


@app.command()
def version():
    """Display version information."""
    typer.echo("Percy Thumbnail v0.1.0")
    raise typer.Exit()


app.command("capture")(capture)
app.command("update-video")(update_video_command)


if __name__ == "__main__":
    app()
