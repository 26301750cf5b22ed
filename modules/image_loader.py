"""
Image loader: turns a design's image reference into a decoded Pillow image.

Accepted references:
  - data URLs (data:image/jpeg;base64,...), as stored by the upload form
  - raw base64 payloads
  - http(s) URLs, fetched with requests
  - local filesystem paths
"""

import base64
import binascii
import io
import logging
from pathlib import Path

import requests
from PIL import Image, ImageOps, UnidentifiedImageError

from config.settings import IMAGE_FETCH_TIMEOUT
from modules.errors import ImageDecodeError

logger = logging.getLogger(__name__)


def _is_file(ref: str) -> bool:
    # Base64 payloads can look like paths with over-long segments.
    try:
        return Path(ref).is_file()
    except (OSError, ValueError):
        return False


def _read_reference(ref: str) -> bytes:
    if ref.startswith("data:"):
        header, _, payload = ref.partition(",")
        if ";base64" not in header:
            raise ImageDecodeError("Only base64 data URLs are supported")
        try:
            return base64.b64decode(payload)
        except (binascii.Error, ValueError) as exc:
            raise ImageDecodeError(f"Malformed data URL: {exc}") from exc

    if ref.startswith(("http://", "https://")):
        try:
            resp = requests.get(ref, timeout=IMAGE_FETCH_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise ImageDecodeError(f"Image source failed to load: {ref} ({exc})") from exc
        return resp.content

    if len(ref) < 1024 and _is_file(ref):
        try:
            return Path(ref).read_bytes()
        except OSError as exc:
            raise ImageDecodeError(f"Image file could not be read: {ref} ({exc})") from exc

    try:
        return base64.b64decode(ref, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError("Image reference is neither a URL, a file nor base64 data") from exc


def load_image(ref: str | bytes | None) -> Image.Image:
    """Decode an image reference. Raises ImageDecodeError on any failure."""
    if not ref:
        raise ImageDecodeError("Design has no image")

    raw = ref if isinstance(ref, bytes) else _read_reference(str(ref).strip())

    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ImageDecodeError(f"Image source failed to decode: {exc}") from exc

    # Honour camera orientation so portrait photos are not drawn sideways.
    img = ImageOps.exif_transpose(img)
    logger.debug("Decoded image %sx%s mode=%s", img.width, img.height, img.mode)
    return img
