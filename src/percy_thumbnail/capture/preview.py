"""Preview references: temporary files addressable by a file:// URL."""

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class PreviewHandle:
    """Owned, revocable reference to an in-memory image written to disk."""

    def __init__(self, path: Path):
        self.path = path
        self._released = False

    @property
    def url(self) -> str:
        return self.path.as_uri()

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Delete the backing file. May only be called once."""
        if self._released:
            raise RuntimeError(f"Preview already released: {self.url}")
        self.path.unlink(missing_ok=True)
        self._released = True
        logger.debug(f"Released preview {self.url}")


class PreviewStore:
    """Creates preview handles under `directory` (system temp dir by default)."""

    def __init__(self, directory: Path | None = None):
        self.directory = directory

    def create(self, data: bytes, suffix: str = ".png") -> PreviewHandle:
        if self.directory is not None:
            self.directory.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix="percy-preview-", suffix=suffix, dir=self.directory)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        handle = PreviewHandle(Path(name))
        logger.debug(f"Created preview {handle.url} ({len(data):,} bytes)")
        return handle


class PreviewSlot:
    """Holds the single current preview; replacing or clearing releases the old one."""

    def __init__(self) -> None:
        self._current: PreviewHandle | None = None

    @property
    def current(self) -> PreviewHandle | None:
        return self._current

    def replace(self, handle: PreviewHandle) -> None:
        previous, self._current = self._current, handle
        if previous is not None:
            previous.release()

    def clear(self) -> None:
        previous, self._current = self._current, None
        if previous is not None:
            previous.release()

    def detach(self) -> PreviewHandle | None:
        """Hand the current preview to the caller without releasing it."""
        handle, self._current = self._current, None
        return handle
