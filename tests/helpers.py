import base64
import io
from decimal import Decimal

from PIL import Image

from modules.artifacts import Artifact
from modules.errors import ImageDecodeError, PersistenceError, ShareCancelled
from modules.models import Design
from modules.platforms import SharePlatform


def image_bytes(size=(900, 1200), color=(200, 200, 200), fmt="PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


def data_url(size=(900, 1200), color=(200, 200, 200)) -> str:
    return "data:image/png;base64," + base64.b64encode(image_bytes(size, color)).decode("ascii")


def make_design(design_id="d1", **overrides) -> Design:
    values = {
        "id": design_id,
        "name": "Silk Saree",
        "fabric": "Silk",
        "description": "Hand-woven silk",
        "wholesale_price": Decimal("1200"),
        "retail_price": Decimal("1800"),
        "image": data_url(),
    }
    values.update(overrides)
    return Design(**values)


def fake_compose(design, options=None, firm_name=None):
    """Stand-in compositor: no pixels, fails on designs marked broken."""
    if design.image == "broken":
        raise ImageDecodeError(f"Image source failed to load: {design.id}")
    return Artifact(data=f"jpeg:{design.id}".encode(), width=10, height=10, design_id=design.id)


class FakePlatform(SharePlatform):
    """Scriptable capability set that records every interaction."""

    def __init__(self, *, native=False, files=False, text=False, on_share=None, open_ok=True, save_limit=None):
        self.native = native
        self.files_ok = files
        self.text_ok = text
        self.on_share = on_share
        self.open_ok = open_ok
        self.save_limit = save_limit
        self.shared = []
        self.saved = []
        self.opened = []
        self.navigated = []

    def supports_native_share(self):
        return self.native

    def can_share(self, *, files=None, text=None):
        if files is not None:
            return self.files_ok
        return self.text_ok

    def share(self, *, title, text, files=None):
        self.shared.append({"title": title, "text": text, "files": files})
        if self.on_share == "cancel":
            raise ShareCancelled("dismissed")
        if self.on_share == "error":
            raise RuntimeError("share sheet crashed")

    def save_file(self, filename, data):
        if self.save_limit is not None and len(self.saved) >= self.save_limit:
            raise PersistenceError(f"Could not save {filename}: disk full")
        self.saved.append((filename, data))
        return filename

    def open_url(self, url):
        self.opened.append(url)
        return self.open_ok

    def navigate(self, url):
        self.navigated.append(url)


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)
