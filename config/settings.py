import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root
PROJECT_ROOT = Path(__file__).parent.parent
load_dotenv(PROJECT_ROOT / ".env")

# --- Paths ---
ASSETS_DIR = PROJECT_ROOT / "assets"
FONTS_DIR = ASSETS_DIR / "fonts"
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", str(PROJECT_ROOT / "output")))
PREVIEW_DIR = OUTPUT_DIR / "previews"
EXPORT_DIR = OUTPUT_DIR / "exports"
DOWNLOADS_DIR = Path(os.getenv("DOWNLOADS_DIR", str(OUTPUT_DIR / "downloads")))
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"
DEFAULT_DB_PATH = DATA_DIR / "textilehub.db"

# Ensure directories exist
for d in [OUTPUT_DIR, PREVIEW_DIR, EXPORT_DIR, DATA_DIR, LOGS_DIR]:
    d.mkdir(parents=True, exist_ok=True)

# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}")

# --- Branding ---
APP_NAME = os.getenv("APP_NAME", "TextileHub")
BRAND_LABEL = os.getenv("BRAND_LABEL", "TEXTILE HUB")
CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₹")

# --- Branded image ---
MAX_CANVAS_WIDTH = 1200
MAX_CANVAS_HEIGHT = 1600
FALLBACK_CANVAS_SIZE = (800, 1000)
JPEG_QUALITY = 92
MAX_DESCRIPTION_LENGTH = 60
BADGE_MIN_CANVAS_WIDTH = 400
IMAGE_FETCH_TIMEOUT = int(os.getenv("IMAGE_FETCH_TIMEOUT", "20"))

# --- Sharing ---
SHARE_LINK_BASE = os.getenv("SHARE_LINK_BASE", "https://wa.me").rstrip("/")
DOWNLOAD_DELAY_SECONDS = 0.3   # gap between consecutive file saves
GROUP_LINK_STAGGER_SECONDS = float(os.getenv("GROUP_LINK_STAGGER_SECONDS", "1.5"))
LINK_GRACE_SECONDS = 0.5       # wait before closing after opening a link

# --- Logging ---
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
