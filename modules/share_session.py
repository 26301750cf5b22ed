"""
Share session: the user-facing workflow around one share dialog.

States:
  configuring_options -> processing -> ready_to_link -> closed
  processing -> closed           (broadcast native share done, or cancelled)

While configuring, every option or selection change regenerates the
preview of the first selected design. Regenerations are numbered; only the
newest may publish, and anything finishing after close() is released
instead of shown.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path

from config.settings import LINK_GRACE_SECONDS, PREVIEW_DIR
from modules.artifacts import ArtifactHandle, PreviewSlot
from modules.errors import CatalogueShareError, ShareCancelled
from modules.export_channels import CANCELLED
from modules.export_negotiator import READY_TO_LINK, ExportNegotiator, ExportResult
from modules.models import Design, LabelOptions, ShareTarget

logger = logging.getLogger(__name__)

STATE_CONFIGURING = "configuring_options"
STATE_PROCESSING = "processing"
STATE_READY_TO_LINK = "ready_to_link"
STATE_CLOSED = "closed"

GENERIC_EXPORT_ALERT = "Could not prepare images. Please ensure your images are valid."


class ShareSession:
    def __init__(
        self,
        designs: list[Design],
        negotiator: ExportNegotiator,
        *,
        options: LabelOptions | None = None,
        firm_name: str | None = None,
        target: ShareTarget | None = None,
        preview_dir: Path = PREVIEW_DIR,
        background_preview: bool = False,
        sleep=time.sleep,
        grace_seconds: float = LINK_GRACE_SECONDS,
    ):
        self.negotiator = negotiator
        self.options = options or LabelOptions()
        self.firm_name = firm_name
        self.target = target or ShareTarget.broadcast()
        self.preview_dir = Path(preview_dir)
        self.background_preview = background_preview
        self.sleep = sleep
        self.grace_seconds = grace_seconds

        self.state = STATE_CONFIGURING
        self.alert: str | None = None
        self.preview_error: str | None = None
        self.result: ExportResult | None = None

        self._designs = list(designs)
        self._slot = PreviewSlot()
        self._generation = 0
        self._lock = threading.Lock()

    # ── Accessors ────────────────────────────────────────────────────────

    @property
    def designs(self) -> list[Design]:
        with self._lock:
            return list(self._designs)

    @property
    def preview(self) -> ArtifactHandle | None:
        return self._slot.current

    @property
    def is_open(self) -> bool:
        return self.state != STATE_CLOSED

    # ── Configuration changes ───────────────────────────────────────────

    def set_options(self, options: LabelOptions):
        if self.state != STATE_CONFIGURING:
            raise RuntimeError(f"Label options are locked in state '{self.state}'")
        self.options = options
        return self._on_change()

    def toggle_option(self, name: str):
        return self.set_options(self.options.toggled(name))

    def set_target(self, target: ShareTarget) -> None:
        if self.state != STATE_CONFIGURING:
            raise RuntimeError(f"Share target is locked in state '{self.state}'")
        self.target = target

    def update_selection(self, designs: list[Design]):
        with self._lock:
            self._designs = list(designs)
        if self.state == STATE_CONFIGURING:
            return self._on_change()
        return None

    def remove_design(self, design_id: str):
        with self._lock:
            before = len(self._designs)
            self._designs = [d for d in self._designs if d.id != design_id]
            changed = len(self._designs) != before
        if changed and self.state == STATE_CONFIGURING:
            return self._on_change()
        return None

    def _on_change(self):
        if self.background_preview:
            return self.request_preview()
        return self.refresh_preview()

    # ── Preview ──────────────────────────────────────────────────────────

    def refresh_preview(self) -> ArtifactHandle | None:
        """Regenerate the preview for the first selected design.

        Returns the published handle, or None when there was nothing to
        show, the render failed, or a newer request / close() superseded it.
        """
        with self._lock:
            if self.state == STATE_CLOSED:
                return None
            self._generation += 1
            token = self._generation
            design = self._designs[0] if self._designs else None
            options = self.options
            firm_name = self.firm_name

        if design is None:
            self._slot.clear()
            return None

        try:
            artifact = self.negotiator.compositor(design, options, firm_name)
            handle = ArtifactHandle(artifact, self.preview_dir)
        except Exception as e:
            logger.warning(f"Preview generation failed for design {design.id}: {e}")
            with self._lock:
                if token == self._generation:
                    self.preview_error = str(e)
                    self._slot.clear()
            return None

        with self._lock:
            if token != self._generation or self.state == STATE_CLOSED:
                logger.debug("Discarding superseded preview %s", handle.name)
                handle.release()
                return None
            self.preview_error = None
            published = self._slot.replace(handle)
        return handle if published else None

    def request_preview(self) -> threading.Thread:
        """Regenerate the preview on a worker thread."""
        worker = threading.Thread(target=self.refresh_preview, name="share-preview", daemon=True)
        worker.start()
        return worker

    # ── Export ───────────────────────────────────────────────────────────

    def prepare_export(self) -> ExportResult | None:
        """
        Render and deliver all selected designs.

        Never leaves the session in 'processing': success moves to
        ready_to_link or closed, failure records self.alert and returns to
        configuring_options.
        """
        with self._lock:
            if self.state != STATE_CONFIGURING:
                raise RuntimeError(f"Cannot export from state '{self.state}'")
            self.state = STATE_PROCESSING
            self.alert = None
            designs = list(self._designs)

        try:
            result = self.negotiator.export(designs, self.options, self.firm_name, self.target)
        except ShareCancelled:
            logger.info("Share cancelled by user")
            self.close()
            return None
        except CatalogueShareError as e:
            logger.error(f"Share process failed: {e}")
            self.alert = str(e)
            self.state = STATE_CONFIGURING
            return None
        except Exception as e:
            logger.error(f"Share process failed: {e}", exc_info=True)
            self.alert = GENERIC_EXPORT_ALERT
            self.state = STATE_CONFIGURING
            return None

        self.result = result
        if result.status == READY_TO_LINK:
            self.state = STATE_READY_TO_LINK
        else:
            if result.status == CANCELLED:
                logger.info("Share cancelled by user")
            self.close()
        return result

    def open_link(self) -> list[str]:
        """Open the pending deep link(s), then close after a short grace delay."""
        if self.state != STATE_READY_TO_LINK or self.result is None:
            raise RuntimeError(f"No link to open in state '{self.state}'")
        links = list(self.result.links)
        try:
            self.negotiator.open_links(links)
            self.sleep(self.grace_seconds)
        finally:
            self.close()
        return links

    # ── Teardown ─────────────────────────────────────────────────────────

    def close(self) -> None:
        with self._lock:
            self.state = STATE_CLOSED
        self._slot.close()

    cancel = close

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
