"""Shared Pydantic models for the capture session."""

import mimetypes
from enum import Enum
from pathlib import Path
from typing import Literal, NamedTuple, Optional

from pydantic import BaseModel, Field

MAX_FRAME_WIDTH = 1280
MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5 MiB
DEFAULT_API_URL = "http://localhost:3000/api"


class ImageSource(str, Enum):
    """Where a captured image came from."""
    CANVAS = "canvas"
    SERVER = "server"
    UPLOAD = "upload"


class SessionState(str, Enum):
    """Lifecycle of a capture session."""
    LOADING = "loading"
    READY = "ready"
    CAPTURING = "capturing"
    ERROR = "error"
    CLOSED = "closed"


class Tab(str, Enum):
    """Which affordance the user is steered to."""
    CAPTURE = "capture"
    UPLOAD = "upload"


class CapturedImage(BaseModel):
    """Image bytes ready to be handed to the editor."""
    data: bytes
    mime_type: str = "image/png"
    file_name: str
    source: ImageSource
    width: int | None = None
    height: int | None = None

    @property
    def size(self) -> int:
        return len(self.data)


class UploadedFile(BaseModel):
    """A file picked by the user for manual upload."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path) -> "UploadedFile":
        """Read a file from disk, guessing its MIME type from the extension."""
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content_type=content_type or "application/octet-stream",
            data=path.read_bytes(),
        )


class Notice(BaseModel):
    """Toast-level notification raised by the session."""
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"


class ControlState(BaseModel):
    """Which controls a front end should enable."""
    seek: bool = False
    capture: bool = False
    server_capture: bool = False
    upload: bool = False
    confirm: bool = False


class AuthContext(BaseModel):
    """Bearer credentials passed explicitly to the API clients."""
    token: Optional[str] = None

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}


class CaptureSettings(BaseModel):
    """Tunable parameters of a capture session."""
    api_base_url: str = DEFAULT_API_URL
    max_frame_width: int = Field(MAX_FRAME_WIDTH, gt=0, description="Maximum captured frame width in pixels")
    max_upload_bytes: int = Field(MAX_UPLOAD_BYTES, gt=0, description="Maximum accepted upload size")
    initial_position_ratio: float = Field(0.1, ge=0, le=1, description="Initial seek position as a fraction of the duration")
    request_timeout: float = Field(30.0, gt=0, description="HTTP timeout in seconds")

    def stream_url(self, video_id: str) -> str:
        return f"{self.api_base_url.rstrip('/')}/videos/{video_id}/stream"


class SelectionResult(NamedTuple):
    """What the editor receives on confirm."""
    image: Optional[CapturedImage]
    preview_url: Optional[str]
