import base64

import pytest
import requests
from PIL import Image

from modules import image_loader
from modules.errors import ImageDecodeError
from modules.image_loader import load_image
from tests.helpers import data_url, image_bytes


def test_loads_data_url():
    img = load_image(data_url(size=(30, 40)))
    assert img.size == (30, 40)


def test_loads_raw_base64_and_bytes():
    raw = image_bytes(size=(12, 8), fmt="JPEG")
    assert load_image(base64.b64encode(raw).decode("ascii")).size == (12, 8)
    assert load_image(raw).size == (12, 8)


def test_loads_file_path(tmp_path):
    path = tmp_path / "design.png"
    path.write_bytes(image_bytes(size=(20, 20)))
    assert load_image(str(path)).size == (20, 20)


def test_loads_http_url(monkeypatch):
    class Response:
        content = image_bytes(size=(16, 16))

        def raise_for_status(self):
            pass

    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return Response()

    monkeypatch.setattr(image_loader.requests, "get", fake_get)
    assert load_image("https://cdn.example.com/d1.png").size == (16, 16)
    assert calls == ["https://cdn.example.com/d1.png"]


def test_http_failure_is_decode_error(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(image_loader.requests, "get", fake_get)
    with pytest.raises(ImageDecodeError, match="failed to load"):
        load_image("https://cdn.example.com/missing.png")


@pytest.mark.parametrize(
    "ref",
    [
        None,
        "",
        "not an image",
        "data:image/png,rawpixels",
        "data:image/png;base64," + base64.b64encode(b"garbage bytes").decode("ascii"),
    ],
)
def test_bad_references_raise(ref):
    with pytest.raises(ImageDecodeError):
        load_image(ref)


def test_oversized_image_is_decode_error(monkeypatch):
    # Pillow refuses sources above twice MAX_IMAGE_PIXELS.
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(ImageDecodeError):
        load_image(image_bytes(size=(20, 20)))
