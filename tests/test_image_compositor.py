import io
from decimal import Decimal

import pytest
from PIL import Image

from modules.errors import EncodeError, ImageDecodeError
from modules.image_compositor import build_label_lines, compose, format_price, truncate_description
from modules.models import LabelOptions
from tests.helpers import data_url, make_design

ALL_ON = LabelOptions(
    include_wholesale=True,
    include_retail=True,
    include_fabric=True,
    include_description=True,
    include_firm_name=True,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (Decimal("1250"), "₹1,250"),
        (Decimal("1200.0"), "₹1,200"),
        (Decimal("99.50"), "₹99.5"),
        (Decimal("1234567.891"), "₹1,234,567.89"),
        (Decimal("0"), "₹0"),
    ],
)
def test_format_price(value, expected):
    assert format_price(value) == expected


def test_default_label_lines():
    lines = build_label_lines(make_design(), LabelOptions(), "Lakshmi Textiles")
    assert lines == ["Lakshmi Textiles", "Fabric: Silk", "Retail: ₹1,800"]


def test_all_label_lines_in_fixed_order():
    lines = build_label_lines(make_design(), ALL_ON, "Lakshmi Textiles")
    assert lines == [
        "Lakshmi Textiles",
        "Fabric: Silk",
        "Retail: ₹1,800",
        "Wholesale: ₹1,200",
        "Hand-woven silk",
    ]


def test_empty_fields_are_skipped():
    design = make_design(fabric="  ", description="", retail_price=None)
    assert build_label_lines(design, ALL_ON, None) == ["Wholesale: ₹1,200"]


def test_toggling_only_changes_its_line():
    base = build_label_lines(make_design(), LabelOptions(), "Firm")
    toggled = build_label_lines(make_design(), LabelOptions().toggled("include_wholesale"), "Firm")
    assert toggled == base + ["Wholesale: ₹1,200"]


def test_description_truncated_to_sixty_chars():
    text = "x" * 75
    assert truncate_description(text) == "x" * 60 + "..."
    assert truncate_description("short") == "short"
    lines = build_label_lines(make_design(description=text), ALL_ON, None)
    assert lines[-1] == "x" * 60 + "..."


def test_compose_produces_fitted_jpeg():
    design = make_design(image=data_url(size=(2400, 3200)))
    artifact = compose(design, LabelOptions(), "Firm")

    img = Image.open(io.BytesIO(artifact.data))
    assert img.format == "JPEG"
    assert img.size == (1200, 1600)
    assert (artifact.width, artifact.height) == (1200, 1600)
    assert artifact.design_id == design.id
    assert artifact.lines == ["Firm", "Fabric: Silk", "Retail: ₹1,800"]
    assert artifact.layout.sub_lines


def test_compose_is_deterministic():
    design = make_design()
    first = compose(design, ALL_ON, "Firm")
    second = compose(design, ALL_ON, "Firm")
    assert first.data == second.data


def test_compose_with_no_label_lines_still_renders():
    options = LabelOptions(include_retail=False, include_fabric=False, include_firm_name=False)
    artifact = compose(make_design(), options, None)
    assert artifact.lines == []
    assert artifact.layout.placements == []
    assert Image.open(io.BytesIO(artifact.data)).format == "JPEG"


def _near(pixel, color, tolerance=40):
    return all(abs(a - b) <= tolerance for a, b in zip(pixel, color))


def test_brand_badge_drawn_on_wide_canvas():
    artifact = compose(make_design(image=data_url(size=(1000, 1000), color=(255, 255, 255))))
    img = Image.open(io.BytesIO(artifact.data)).convert("RGB")
    # Badge spans x 780..980, y 20..80; sample above the label text.
    assert _near(img.getpixel((880, 28)), (79, 70, 229))


def test_brand_badge_skipped_on_narrow_canvas():
    artifact = compose(make_design(image=data_url(size=(400, 500), color=(255, 255, 255))))
    img = Image.open(io.BytesIO(artifact.data)).convert("RGB")
    assert _near(img.getpixel((320, 28)), (255, 255, 255))


def test_banner_darkens_bottom_of_image():
    artifact = compose(make_design(image=data_url(size=(1000, 1000), color=(255, 255, 255))))
    img = Image.open(io.BytesIO(artifact.data)).convert("RGB")
    top = img.getpixel((5, 400))
    bottom = img.getpixel((5, 995))
    assert _near(top, (255, 255, 255))
    assert sum(bottom) < 60


def test_undecodable_image_raises():
    with pytest.raises(ImageDecodeError):
        compose(make_design(image="not an image"))


def test_encoder_failure_raises():
    def broken_encoder(img):
        raise EncodeError("no encoder")

    with pytest.raises(EncodeError):
        compose(make_design(), encoder=broken_encoder)
