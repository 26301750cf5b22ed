"""
Error taxonomy for branded-image generation and sharing.

ShareCancelled is a normal terminal outcome (the user dismissed a share
prompt), not a failure; callers close the session without alerting.
"""


class CatalogueShareError(Exception):
    """Base class for share pipeline errors."""


class ImageDecodeError(CatalogueShareError):
    """Source image is missing, unreachable or not decodable."""


class EncodeError(CatalogueShareError):
    """Composited surface could not be encoded to the output format."""


class ShareCancelled(CatalogueShareError):
    """User dismissed a native share prompt."""


class ShareUnavailable(CatalogueShareError):
    """Requested share capability is absent on this platform."""


class PersistenceError(CatalogueShareError):
    """Saving an artifact to local storage failed."""


class EmptyGroupError(CatalogueShareError):
    """Group broadcast requested for a group without reachable members."""


class ExportError(CatalogueShareError):
    """Batch export aborted; carries the designs that failed to render."""

    def __init__(self, message: str, failures: list[dict] | None = None):
        super().__init__(message)
        self.failures = failures or []
