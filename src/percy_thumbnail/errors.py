"""Error taxonomy shared by the capture session, the API clients and the CLI."""


class ThumbnailError(Exception):
    """Base class for every failure surfaced to the user.

    Args:
        reason: Short, stable description of the cause (e.g. "frame unavailable").
        user_message: Sentence shown to the user. Defaults to the reason.
    """

    def __init__(self, reason: str, user_message: str | None = None):
        super().__init__(reason)
        self.reason = reason
        self.user_message = user_message or reason


class LoadError(ThumbnailError):
    """The video source failed to load or decode."""


class CaptureError(ThumbnailError):
    """Frame capture failed: undecoded frame, draw or encode failure."""

    # Failures that only need the user to wait do not trigger the server fallback
    NO_FALLBACK_REASONS = frozenset({"frame unavailable", "not ready"})

    @property
    def allows_fallback(self) -> bool:
        return self.reason not in self.NO_FALLBACK_REASONS


class NetworkError(ThumbnailError):
    """A request to the remote API failed (auth, status, connectivity)."""

    def __init__(self, reason: str, user_message: str | None = None, status_code: int | None = None):
        super().__init__(reason, user_message)
        self.status_code = status_code


class ValidationError(ThumbnailError):
    """An uploaded file was rejected before touching the selection."""
