from __future__ import annotations

import os

from config.settings import EXPORT_DIR, OUTPUT_DIR, PREVIEW_DIR  # noqa: F401

USER_HEADER = "X-User-Id"
MAX_SHARE_DESIGNS = int(os.getenv("MAX_SHARE_DESIGNS", "30"))


def ensure_dirs() -> None:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    EXPORT_DIR.mkdir(parents=True, exist_ok=True)
    PREVIEW_DIR.mkdir(parents=True, exist_ok=True)
