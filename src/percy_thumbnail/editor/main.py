"""Core logic for update-video: persist title, description, player settings and thumbnail."""

import logging
from typing import Any, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field

from percy_thumbnail.errors import NetworkError
from percy_thumbnail.models.capture import AuthContext, CapturedImage

logger = logging.getLogger(__name__)


class CallToAction(BaseModel):
    """Call-to-action shown near the end of the video."""
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    title: str = "Want to learn more?"
    description: Optional[str] = None
    button_text: str = Field("Visit Website", alias="buttonText")
    button_link: str = Field("", alias="buttonLink")
    display_time: Optional[float] = Field(None, ge=0, alias="displayTime", description="Seconds before the end")


class VideoSettings(BaseModel):
    """Player customisation stored alongside the video."""
    model_config = ConfigDict(populate_by_name=True)

    player_color: Optional[str] = Field(None, alias="playerColor")
    secondary_color: Optional[str] = Field(None, alias="secondaryColor")
    auto_play: Optional[bool] = Field(None, alias="autoPlay")
    show_controls: Optional[bool] = Field(None, alias="showControls")
    call_to_action: Optional[CallToAction] = Field(None, alias="callToAction")

    def to_form_value(self) -> str:
        """JSON for the multipart `settings` field; a disabled call-to-action is omitted."""
        exclude = None
        if self.call_to_action is not None and not self.call_to_action.enabled:
            exclude = {"call_to_action"}
        return self.model_dump_json(by_alias=True, exclude_none=True, exclude=exclude)


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return "Failed to update video"
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return "Failed to update video"


def update_video(
    base_url: str,
    auth: AuthContext,
    video_id: str,
    title: str,
    description: str = "",
    settings: VideoSettings | None = None,
    thumbnail: CapturedImage | None = None,
    timeout: float = 30.0,
    session: requests.Session | None = None,
) -> dict[str, Any]:
    """Send `PATCH /videos/{id}` as multipart form data.

    Args:
        base_url: API base URL, e.g. https://app.example.com/api
        auth: Bearer credentials.
        video_id: Video to update.
        title: New title.
        description: New description.
        settings: Player settings, JSON-encoded into the `settings` field.
        thumbnail: Optional image sent as the `thumbnail` file part.

    Returns:
        The updated video as returned by the API.

    Raises:
        NetworkError: Missing token, non-2xx response or connectivity failure.
    """
    if not auth.token:
        raise NetworkError("missing auth token", "Authentication token not found. Please sign in again.")

    url = f"{base_url.rstrip('/')}/videos/{video_id}"
    data = {
        "title": title,
        "description": description,
        "settings": (settings or VideoSettings()).to_form_value(),
    }
    files = None
    if thumbnail is not None:
        files = {"thumbnail": (thumbnail.file_name, thumbnail.data, thumbnail.mime_type)}
        logger.info(f"Attaching thumbnail {thumbnail.file_name} ({thumbnail.size:,} bytes)")

    logger.info(f"Updating video {video_id}")
    http = session or requests.Session()
    try:
        response = http.patch(url, data=data, files=files, headers=auth.headers(), timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise NetworkError(f"request failed: {e}", "Failed to update video. Please try again.") from e

    if not response.ok:
        message = _error_message(response)
        logger.error(f"Update of video {video_id} failed ({response.status_code}): {message}")
        raise NetworkError(f"server returned {response.status_code}", message, status_code=response.status_code)

    try:
        updated = response.json()
    except ValueError as e:
        raise NetworkError("invalid response", "Failed to update video. Please try again.") from e

    logger.info(f"Video {video_id} updated")
    return updated
