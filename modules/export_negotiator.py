"""
Export negotiator: renders the selected designs and delivers them through
the best channel the platform offers.

Flow:
  1. Validate the target (a group needs at least one reachable member)
  2. Render every design in selection order (whole batch, before any delivery)
  3. Walk the channels in priority order until one delivers or the user cancels
  4. On the download path, hand back the deep link(s) for the caller to open
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from config.settings import APP_NAME, GROUP_LINK_STAGGER_SECONDS
from modules.artifacts import Artifact
from modules.errors import EmptyGroupError, ExportError, ShareUnavailable
from modules.export_channels import (
    CANCELLED,
    DELIVERED,
    DownloadAndLink,
    ExportChannel,
    ExportRequest,
    NativeFileShare,
    NativeTextShare,
    artifact_filename,
    build_caption,
    build_summary,
)
from modules.image_compositor import compose
from modules.models import Design, LabelOptions, ShareTarget
from modules.platforms import SharePlatform

logger = logging.getLogger(__name__)

READY_TO_LINK = "ready_to_link"


@dataclass
class ExportResult:
    status: str
    channel: str | None
    caption: str
    filenames: list[str] = field(default_factory=list)
    saved_files: list[Path] = field(default_factory=list)
    links: list[str] = field(default_factory=list)

    @property
    def needs_link(self) -> bool:
        return self.status == READY_TO_LINK


class ExportNegotiator:
    def __init__(
        self,
        platform: SharePlatform,
        *,
        compositor=compose,
        sleep=time.sleep,
        app_name: str = APP_NAME,
        link_stagger: float = GROUP_LINK_STAGGER_SECONDS,
    ):
        self.platform = platform
        self.compositor = compositor
        self.sleep = sleep
        self.app_name = app_name
        self.link_stagger = link_stagger

    def channels_for(self, target: ShareTarget) -> list[ExportChannel]:
        if target.is_group:
            # A dismissed share sheet still leaves the per-member chats to open.
            return [
                NativeFileShare(self.platform, sleep=self.sleep, cancel_is_terminal=False),
                DownloadAndLink(self.platform, sleep=self.sleep),
            ]
        return [
            NativeFileShare(self.platform, sleep=self.sleep),
            NativeTextShare(self.platform, sleep=self.sleep),
            DownloadAndLink(self.platform, sleep=self.sleep),
        ]

    def render_batch(
        self,
        designs: list[Design],
        options: LabelOptions,
        firm_name: str | None = None,
    ) -> list[tuple[str, Artifact]]:
        """
        Render all designs in order. Every design is attempted; if any fails,
        the batch is rejected as a whole with the failing indices listed.
        """
        rendered = []
        failures = []
        for i, design in enumerate(designs, start=1):
            try:
                artifact = self.compositor(design, options, firm_name)
            except Exception as e:
                logger.warning(f"Design #{i} ({design.id}) failed to render: {e}")
                failures.append({"index": i, "design_id": design.id, "error": str(e)})
                continue
            rendered.append((artifact_filename(i, self.app_name), artifact))

        if failures:
            listed = ", ".join(f"#{f['index']} ({f['design_id']})" for f in failures)
            raise ExportError(
                f"Could not prepare images. Please ensure your images are valid. Failed: {listed}",
                failures=failures,
            )
        return rendered

    def negotiate(self, request: ExportRequest, channels: list[ExportChannel]) -> ExportResult:
        filenames = [name for name, _ in request.artifacts]
        for channel in channels:
            result = channel.attempt(request)
            logger.info(f"Channel {channel.name}: {result.status}")
            if result.status == CANCELLED:
                return ExportResult(CANCELLED, channel.name, request.caption, filenames)
            if result.status == DELIVERED:
                return ExportResult(
                    READY_TO_LINK if result.links else DELIVERED,
                    channel.name,
                    request.caption,
                    filenames,
                    saved_files=result.saved_files,
                    links=result.links,
                )
        raise ShareUnavailable("No export channel could deliver the images")

    def export(
        self,
        designs: list[Design],
        options: LabelOptions,
        firm_name: str | None = None,
        target: ShareTarget | None = None,
    ) -> ExportResult:
        target = target or ShareTarget.broadcast()
        if not designs:
            raise ExportError("Select at least one design to share")

        recipients = None
        if target.is_group:
            recipients = target.group.reachable_members() if target.group else []
            if not recipients:
                raise EmptyGroupError("Select a group with members")

        logger.info(f"Exporting {len(designs)} designs ({target.kind})")
        artifacts = self.render_batch(designs, options, firm_name)
        request = ExportRequest(
            artifacts=artifacts,
            caption=build_caption(len(designs), self.app_name),
            summary=build_summary(designs),
            title=f"{self.app_name} Design Catalogue",
            recipients=recipients,
        )
        return self.negotiate(request, self.channels_for(target))

    def open_links(self, links: list[str]) -> int:
        """Open deep links one at a time, staggered to dodge popup blockers."""
        for i, url in enumerate(links):
            if i > 0:
                self.sleep(self.link_stagger)
            if not self.platform.open_url(url):
                logger.info("New window blocked, navigating in place")
                self.platform.navigate(url)
        return len(links)
