"""Tests for update-video; the HTTP session is mocked."""

import io
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests
from PIL import Image
from typer.testing import CliRunner

from percy_thumbnail.cli import app
from percy_thumbnail.editor.main import CallToAction, VideoSettings, update_video
from percy_thumbnail.errors import NetworkError
from percy_thumbnail.models.capture import AuthContext, CapturedImage, ImageSource
from percy_thumbnail.utils.cli import EXIT_USER_ERROR

runner = CliRunner()

AUTH = AuthContext(token="secret")


def _session(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload if payload is not None else {"id": "vid1"}
    session = MagicMock()
    session.patch.return_value = response
    return session


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (160, 90)).save(buffer, format="PNG")
    return buffer.getvalue()


def test_settings_form_value_uses_camel_case():
    settings = VideoSettings(
        player_color="#E11D48",
        auto_play=True,
        call_to_action=CallToAction(enabled=True, button_link="https://example.com", display_time=5),
    )
    assert json.loads(settings.to_form_value()) == {
        "playerColor": "#E11D48",
        "autoPlay": True,
        "callToAction": {
            "enabled": True,
            "title": "Want to learn more?",
            "buttonText": "Visit Website",
            "buttonLink": "https://example.com",
            "displayTime": 5.0,
        },
    }


def test_disabled_call_to_action_is_omitted():
    settings = VideoSettings(secondary_color="#581C87", call_to_action=CallToAction(enabled=False))
    assert json.loads(settings.to_form_value()) == {"secondaryColor": "#581C87"}


def test_settings_parse_from_api_json():
    settings = VideoSettings.model_validate_json('{"playerColor": "#fff", "callToAction": {"enabled": true, "buttonText": "Go"}}')
    assert settings.player_color == "#fff"
    assert settings.call_to_action.button_text == "Go"


def test_update_video_sends_multipart_with_thumbnail():
    session = _session()
    thumbnail = CapturedImage(data=b"png-bytes", file_name="thumbnail-vid1-1.png", source=ImageSource.CANVAS)

    updated = update_video(
        "https://api.example.com/api", AUTH, "vid1",
        title="Demo", description="Walkthrough",
        settings=VideoSettings(auto_play=False),
        thumbnail=thumbnail,
        session=session,
    )

    assert updated == {"id": "vid1"}
    args, kwargs = session.patch.call_args
    assert args[0] == "https://api.example.com/api/videos/vid1"
    assert kwargs["data"] == {"title": "Demo", "description": "Walkthrough", "settings": '{"autoPlay":false}'}
    assert kwargs["files"] == {"thumbnail": ("thumbnail-vid1-1.png", b"png-bytes", "image/png")}
    assert kwargs["headers"] == {"Authorization": "Bearer secret"}


def test_update_video_without_thumbnail():
    session = _session()
    update_video("https://api.example.com/api", AUTH, "vid1", title="Demo", session=session)
    assert session.patch.call_args.kwargs["files"] is None


def test_update_video_requires_token():
    session = _session()
    with pytest.raises(NetworkError, match="missing auth token"):
        update_video("https://api.example.com/api", AuthContext(), "vid1", title="Demo", session=session)
    session.patch.assert_not_called()


def test_update_video_surfaces_server_message():
    session = _session(status_code=422, payload={"message": "Title is required"})
    with pytest.raises(NetworkError) as exc_info:
        update_video("https://api.example.com/api", AUTH, "vid1", title="", session=session)
    assert exc_info.value.user_message == "Title is required"
    assert exc_info.value.status_code == 422


def test_update_video_connection_error():
    session = _session()
    session.patch.side_effect = requests.exceptions.ConnectionError("refused")
    with pytest.raises(NetworkError):
        update_video("https://api.example.com/api", AUTH, "vid1", title="Demo", session=session)


def test_cli_update_video(tmp_path: Path):
    thumbnail = tmp_path / "cover.png"
    thumbnail.write_bytes(_png_bytes())
    settings = tmp_path / "settings.json"
    settings.write_text('{"playerColor": "#E11D48"}')

    with patch("percy_thumbnail.editor.cli.update_video", return_value={"thumbnailUrl": "https://cdn/x.png"}) as mock:
        result = runner.invoke(app, [
            "update-video", "vid1",
            "--title", "Demo",
            "--settings", str(settings),
            "--thumbnail", str(thumbnail),
            "--token", "secret",
        ])

    assert result.exit_code == 0, result.output
    kwargs = mock.call_args.kwargs
    assert kwargs["title"] == "Demo"
    assert kwargs["settings"].player_color == "#E11D48"
    assert kwargs["thumbnail"].data == thumbnail.read_bytes()
    assert (kwargs["thumbnail"].width, kwargs["thumbnail"].height) == (160, 90)


def test_cli_update_video_rejects_large_thumbnail(tmp_path: Path):
    thumbnail = tmp_path / "huge.png"
    thumbnail.write_bytes(b"\0" * (6 * 1024 * 1024))

    with patch("percy_thumbnail.editor.cli.update_video") as mock:
        result = runner.invoke(app, ["update-video", "vid1", "--title", "Demo", "--thumbnail", str(thumbnail)])

    assert result.exit_code == EXIT_USER_ERROR
    mock.assert_not_called()
