"""
Export channels: the ways a batch of branded images can leave the app.

Every channel exposes attempt(request) and answers with one of
DELIVERED, CANCELLED or UNAVAILABLE. The negotiator walks channels in
priority order and reacts to that answer:

  1. NativeFileShare  - platform share sheet with the image files attached
  2. NativeTextShare  - share sheet with text only; files saved for manual attach
  3. DownloadAndLink  - save files one by one, then hand back deep link(s)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import quote

from config.settings import APP_NAME, DOWNLOAD_DELAY_SECONDS, SHARE_LINK_BASE
from modules.artifacts import Artifact
from modules.errors import PersistenceError, ShareCancelled, ShareUnavailable
from modules.image_compositor import format_price
from modules.models import Design, GroupMember
from modules.platforms import SharePlatform

logger = logging.getLogger(__name__)

DELIVERED = "delivered"
CANCELLED = "cancelled"
UNAVAILABLE = "unavailable"


# ── Caption / naming / links ─────────────────────────────────────────────────

def artifact_filename(index: int, app_name: str = APP_NAME) -> str:
    """1-based file name used for downloads and share attachments."""
    return f"{app_name}_Design_{index}.jpg"


def build_caption(count: int, app_name: str = APP_NAME) -> str:
    noun = "design" if count == 1 else "designs"
    return f"📦 {app_name} Catalogue\n\n{count} {noun} attached. Check the images for details! 🎨"


def build_summary(designs: list[Design]) -> str:
    """One line per design: index, fabric and retail price."""
    rows = []
    for i, design in enumerate(designs, start=1):
        price = format_price(design.retail_price) if design.retail_price is not None else "-"
        rows.append(f"{i}. {design.fabric or design.name} - {price}")
    return "\n".join(rows)


def build_share_link(caption: str, phone_number: str | None = None) -> str:
    """Messaging deep link; with a phone number it opens that chat directly."""
    path = f"/{phone_number}" if phone_number else "/"
    return f"{SHARE_LINK_BASE}{path}?text={quote(caption, safe='')}"


def links_for(request: ExportRequest) -> list[str]:
    """One link per group recipient, or a single recipient-less link."""
    if request.is_group:
        return [build_share_link(request.caption, m.phone_number) for m in request.recipients]
    return [build_share_link(request.caption)]


# ── Request / result ─────────────────────────────────────────────────────────

@dataclass
class ExportRequest:
    artifacts: list[tuple[str, Artifact]]
    caption: str
    summary: str = ""
    title: str = f"{APP_NAME} Design Catalogue"
    recipients: list[GroupMember] | None = None

    @property
    def files(self) -> list[tuple[str, bytes]]:
        return [(name, artifact.data) for name, artifact in self.artifacts]

    @property
    def is_group(self) -> bool:
        return self.recipients is not None


@dataclass
class ChannelResult:
    status: str
    channel: str
    saved_files: list[Path] = field(default_factory=list)
    links: list[str] = field(default_factory=list)


def save_all(platform: SharePlatform, request: ExportRequest, *, sleep=time.sleep,
             delay: float = DOWNLOAD_DELAY_SECONDS, saved: list[Path] | None = None) -> list[Path]:
    """Save artifacts strictly one after another, pausing between saves.

    Concurrent save prompts are unreliable, so this never parallelizes.
    PersistenceError propagates; files already saved are left in place and,
    when a list is passed as saved, recorded in it.
    """
    saved = [] if saved is None else saved
    total = len(request.artifacts)
    for i, (name, artifact) in enumerate(request.artifacts):
        saved.append(platform.save_file(name, artifact.data))
        if total > 1 and i < total - 1:
            sleep(delay)
    return saved


# ── Channels ─────────────────────────────────────────────────────────────────

class ExportChannel:
    name = "channel"

    def __init__(self, platform: SharePlatform, *, sleep=time.sleep):
        self.platform = platform
        self.sleep = sleep

    def attempt(self, request: ExportRequest) -> ChannelResult:
        raise NotImplementedError

    def _result(self, status: str, **kwargs) -> ChannelResult:
        return ChannelResult(status=status, channel=self.name, **kwargs)


class NativeFileShare(ExportChannel):
    name = "native_file_share"

    def __init__(self, platform: SharePlatform, *, sleep=time.sleep, cancel_is_terminal: bool = True):
        super().__init__(platform, sleep=sleep)
        self.cancel_is_terminal = cancel_is_terminal

    def attempt(self, request: ExportRequest) -> ChannelResult:
        files = request.files
        if not self.platform.supports_native_share() or not self.platform.can_share(files=files):
            return self._result(UNAVAILABLE)

        try:
            self.platform.share(title=request.title, text=request.caption, files=files)
        except ShareCancelled:
            logger.info("Native file share cancelled by user")
            return self._result(CANCELLED if self.cancel_is_terminal else UNAVAILABLE)
        except ShareUnavailable as e:
            logger.info(f"Native file share unavailable: {e}")
            return self._result(UNAVAILABLE)
        except Exception as e:
            logger.warning(f"Native file share failed, falling back: {e}")
            return self._result(UNAVAILABLE)

        logger.info(f"Shared {len(files)} files via native share")
        if request.is_group:
            # The sheet reaches one chat; members are still messaged individually.
            return self._result(DELIVERED, links=links_for(request))
        return self._result(DELIVERED)


class NativeTextShare(ExportChannel):
    name = "native_text_share"

    def attempt(self, request: ExportRequest) -> ChannelResult:
        text = f"{request.caption}\n\n{request.summary}" if request.summary else request.caption
        if not self.platform.supports_native_share() or not self.platform.can_share(text=text):
            return self._result(UNAVAILABLE)

        try:
            self.platform.share(title=f"{APP_NAME} Catalogue", text=text)
        except ShareCancelled:
            logger.info("Native text share cancelled by user")
            return self._result(CANCELLED)
        except ShareUnavailable as e:
            logger.info(f"Native text share unavailable: {e}")
            return self._result(UNAVAILABLE)
        except Exception as e:
            logger.warning(f"Native text share failed, falling back: {e}")
            return self._result(UNAVAILABLE)

        # Text went out without files; keep copies so the user can attach them.
        saved = []
        try:
            save_all(self.platform, request, sleep=self.sleep, saved=saved)
        except PersistenceError as e:
            logger.warning(f"Text shared but only {len(saved)} of {len(request.artifacts)} files saved: {e}")
        return self._result(DELIVERED, saved_files=saved)


class DownloadAndLink(ExportChannel):
    """Always available: save every file, then expose the link(s) to open.

    Deep links can only carry text, so the user attaches the saved images
    by hand in the messaging app.
    """

    name = "download_and_link"

    def attempt(self, request: ExportRequest) -> ChannelResult:
        saved = save_all(self.platform, request, sleep=self.sleep)
        links = links_for(request)
        logger.info(f"Saved {len(saved)} files, {len(links)} link(s) ready")
        return self._result(DELIVERED, saved_files=saved, links=links)
