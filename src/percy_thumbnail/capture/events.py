"""Media events posted by a video element and consumed by the capture session."""

from collections import deque
from dataclasses import dataclass
from typing import Iterator, Protocol

from PIL import Image


@dataclass(frozen=True)
class LoadStart:
    """The element started (re)loading its source."""


@dataclass(frozen=True)
class MetadataLoaded:
    """Duration and dimensions are known; no frame decoded yet."""
    duration: float


@dataclass(frozen=True)
class CanPlay:
    """A frame at the current position has been decoded."""


@dataclass(frozen=True)
class Seeked:
    """A seek finished settling at `time`."""
    time: float


@dataclass(frozen=True)
class MediaError:
    """The source failed to load or decode."""
    message: str


MediaEvent = LoadStart | MetadataLoaded | CanPlay | Seeked | MediaError


class MediaEventChannel:
    """FIFO of media events, drained by the session on its own loop."""

    def __init__(self) -> None:
        self._events: deque[MediaEvent] = deque()

    def post(self, event: MediaEvent) -> None:
        self._events.append(event)

    def drain(self) -> Iterator[MediaEvent]:
        while self._events:
            yield self._events.popleft()

    def __len__(self) -> int:
        return len(self._events)


class VideoElement(Protocol):
    """What the session needs from a media element.

    `video_width`/`video_height` stay 0 until a frame has been decoded.
    """

    duration: float
    current_time: float
    video_width: int
    video_height: int

    def load(self) -> None: ...

    def seek(self, time: float) -> None: ...

    def grab_frame(self) -> Image.Image: ...
