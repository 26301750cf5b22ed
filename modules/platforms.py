"""
Platform capability sets used by the export channels.

A platform answers three questions: can it hand files/text to a native
share sheet, where do locally saved artifacts go, and how is an external
deep link opened. LocalPlatform covers desktop and server use: no native
share sheet, files saved to a directory, links opened in the web browser
(or only recorded when running headless).
"""

from __future__ import annotations

import logging
import webbrowser
from pathlib import Path

from modules.errors import PersistenceError, ShareUnavailable

logger = logging.getLogger(__name__)


class SharePlatform:
    """Base capability set: nothing native, saving and links must be provided."""

    def supports_native_share(self) -> bool:
        return False

    def can_share(self, *, files: list[tuple[str, bytes]] | None = None, text: str | None = None) -> bool:
        return False

    def share(self, *, title: str, text: str, files: list[tuple[str, bytes]] | None = None) -> None:
        """Hand content to the native share sheet.

        Raises ShareCancelled when the user dismisses the prompt and
        ShareUnavailable when the capability is missing.
        """
        raise ShareUnavailable("Native sharing is not available on this platform")

    def save_file(self, filename: str, data: bytes) -> Path:
        raise PersistenceError("This platform cannot save files")

    def open_url(self, url: str) -> bool:
        """Open url in a new window/tab. Returns False if it was blocked."""
        return False

    def navigate(self, url: str) -> None:
        """Open url in the current window; used when a new window is blocked."""
        raise ShareUnavailable("This platform cannot open links")


class LocalPlatform(SharePlatform):
    def __init__(self, download_dir: Path, *, open_browser: bool = True):
        self.download_dir = Path(download_dir)
        self.open_browser = open_browser
        self.saved: list[Path] = []
        self.opened: list[str] = []

    def save_file(self, filename: str, data: bytes) -> Path:
        path = self.download_dir / filename
        try:
            self.download_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise PersistenceError(f"Could not save {filename}: {exc}") from exc
        self.saved.append(path)
        logger.info(f"Saved {path}")
        return path

    def open_url(self, url: str) -> bool:
        self.opened.append(url)
        if not self.open_browser:
            return True
        return webbrowser.open(url, new=2)

    def navigate(self, url: str) -> None:
        if self.open_browser:
            webbrowser.open(url, new=0)
