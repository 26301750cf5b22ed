"""
Branded image artifacts and their ephemeral handles.

An Artifact is the encoded output of the compositor. An ArtifactHandle is
the preview-side reference to it: a file under the preview directory that
must be released (deleted) exactly once, when a newer preview replaces it or
the session ends. PreviewSlot owns the single live handle of a session.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from modules.errors import PersistenceError
from modules.layout_engine import BannerLayout

logger = logging.getLogger(__name__)


@dataclass
class Artifact:
    data: bytes
    width: int
    height: int
    design_id: str
    lines: list[str] = field(default_factory=list)
    layout: BannerLayout | None = None
    content_type: str = "image/jpeg"
    extension: str = "jpg"

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class ArtifactHandle:
    """A released-once file reference to an artifact."""

    def __init__(self, artifact: Artifact, directory: Path):
        self.artifact = artifact
        self._lock = threading.Lock()
        self._released = False
        directory.mkdir(parents=True, exist_ok=True)
        self.path = directory / f"preview_{uuid.uuid4().hex}.{artifact.extension}"
        try:
            self.path.write_bytes(artifact.data)
        except OSError as exc:
            raise PersistenceError(f"Could not write preview {self.path.name}: {exc}") from exc

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> bool:
        """Delete the backing file. Returns False if already released."""
        with self._lock:
            if self._released:
                return False
            self._released = True
        self.path.unlink(missing_ok=True)
        logger.debug("Released preview %s", self.path.name)
        return True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def __repr__(self):
        state = "released" if self._released else "live"
        return f"<ArtifactHandle {self.path.name} {state}>"


class PreviewSlot:
    """Holds at most one live handle; replacing or closing releases the old one."""

    def __init__(self):
        self._lock = threading.Lock()
        self._current: ArtifactHandle | None = None
        self._closed = False

    @property
    def current(self) -> ArtifactHandle | None:
        return self._current

    @property
    def closed(self) -> bool:
        return self._closed

    def replace(self, handle: ArtifactHandle) -> bool:
        """Publish handle as the live preview.

        After close() the incoming handle is released immediately and False
        is returned, so late results never leak.
        """
        with self._lock:
            if self._closed:
                previous = None
                rejected = handle
            else:
                previous = self._current
                self._current = handle
                rejected = None
        if rejected is not None:
            rejected.release()
            return False
        if previous is not None and previous is not handle:
            previous.release()
        return True

    def clear(self) -> None:
        """Release the live handle but keep accepting new ones."""
        with self._lock:
            previous = self._current
            self._current = None
        if previous is not None:
            previous.release()

    def close(self) -> None:
        with self._lock:
            self._closed = True
            previous = self._current
            self._current = None
        if previous is not None:
            previous.release()
