"""
Image compositor: renders a design photo into a branded, shareable JPEG.

Each image gets:
  - The source photo scaled to fit a 1200x1600 bounding box
  - A bottom banner with a dark gradient for legibility
  - Word-wrapped label lines (firm, fabric, prices, description)
  - A brand badge in the top-right corner on wide enough images
"""

import io
import logging
from decimal import Decimal
from pathlib import Path

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from config.settings import (
    BADGE_MIN_CANVAS_WIDTH,
    BRAND_LABEL,
    CURRENCY_SYMBOL,
    FONTS_DIR,
    JPEG_QUALITY,
    MAX_DESCRIPTION_LENGTH,
)
from config.templates import LABEL_STYLE, LAYOUT
from modules.artifacts import Artifact
from modules.errors import EncodeError
from modules.image_loader import load_image
from modules.layout_engine import BannerLayout, compute_layout, fit_canvas_size, font_size_for
from modules.models import Design, LabelOptions

logger = logging.getLogger(__name__)


_FONT_CACHE: dict[tuple[int, bool], ImageFont.FreeTypeFont] = {}


def _get_font(size: int, bold: bool = False) -> ImageFont.FreeTypeFont:
    """Load Inter at the given size/weight. Falls back to system fonts."""
    key = (size, bold)
    if key in _FONT_CACHE:
        return _FONT_CACHE[key]

    font_names = ["Inter-Bold.ttf", "Montserrat-Bold.ttf"] if bold else ["Inter-Regular.ttf", "Montserrat-Regular.ttf"]
    candidates = [FONTS_DIR / name for name in font_names]

    # System fonts
    if bold:
        candidates += [
            Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
            Path("/System/Library/Fonts/Helvetica.ttc"),
            Path("C:\\Windows\\Fonts\\arialbd.ttf"),
        ]
    candidates += [
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        Path("/System/Library/Fonts/Helvetica.ttc"),
        Path("C:\\Windows\\Fonts\\arial.ttf"),
    ]

    font = None
    for path in candidates:
        if path.exists():
            try:
                font = ImageFont.truetype(str(path), size)
                break
            except OSError as e:
                logger.warning(f"Could not load font {path}: {e}")

    if font is None:
        font = ImageFont.load_default(size)

    _FONT_CACHE[key] = font
    return font


# ── Label text ───────────────────────────────────────────────────────────────

def format_price(value: Decimal) -> str:
    """Currency symbol plus grouped amount: 1250 -> ₹1,250, 99.5 -> ₹99.5."""
    amount = Decimal(value)
    if amount == amount.to_integral_value():
        text = f"{int(amount):,}"
    else:
        text = f"{amount.quantize(Decimal('0.01')).normalize():,f}"
    return f"{CURRENCY_SYMBOL}{text}"


def truncate_description(text: str, limit: int = MAX_DESCRIPTION_LENGTH) -> str:
    # One banner line: newlines become spaces, other spacing is kept.
    text = " ".join(text.strip().splitlines())
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def build_label_lines(design: Design, options: LabelOptions, firm_name: str | None = None) -> list[str]:
    """Ordered logical lines for the banner. Empty source fields are skipped."""
    lines = []
    if options.include_firm_name and firm_name and firm_name.strip():
        lines.append(firm_name.strip())
    if options.include_fabric and design.fabric and design.fabric.strip():
        lines.append(f"Fabric: {design.fabric.strip()}")
    if options.include_retail and design.retail_price is not None:
        lines.append(f"Retail: {format_price(design.retail_price)}")
    if options.include_wholesale and design.wholesale_price is not None:
        lines.append(f"Wholesale: {format_price(design.wholesale_price)}")
    if options.include_description and design.description and design.description.strip():
        lines.append(truncate_description(design.description))
    return lines


# ── Drawing ──────────────────────────────────────────────────────────────────

def _draw_banner_overlay(img: Image.Image, layout: BannerLayout) -> Image.Image:
    """Vertical gradient from the banner's top edge to near-opaque black."""
    overlay = Image.new("RGBA", img.size, (0, 0, 0, 0))
    overlay_draw = ImageDraw.Draw(overlay)
    top = max(0, layout.banner_top)
    span = max(1, layout.height - top)
    a_top = LABEL_STYLE["overlay_alpha_top"]
    a_bottom = LABEL_STYLE["overlay_alpha_bottom"]
    for y in range(top, layout.height):
        ratio = (y - top) / span
        alpha = int(255 * (a_top + (a_bottom - a_top) * ratio))
        overlay_draw.line([(0, y), (layout.width, y)], fill=(*LABEL_STYLE["overlay_color"], alpha))
    return Image.alpha_composite(img, overlay)


def _draw_label_text(img: Image.Image, layout: BannerLayout, font: ImageFont.FreeTypeFont) -> Image.Image:
    """Draw wrapped sub-lines left-aligned, over a blurred drop shadow."""
    if not layout.placements:
        return img

    shadow = Image.new("RGBA", img.size, (0, 0, 0, 0))
    shadow_draw = ImageDraw.Draw(shadow)
    dx, dy = LABEL_STYLE["shadow_offset"]
    for text, x, y in layout.placements:
        shadow_draw.text((x + dx, y + dy), text, font=font, fill=LABEL_STYLE["shadow_color"])
    shadow = shadow.filter(ImageFilter.GaussianBlur(LABEL_STYLE["shadow_blur"]))
    img = Image.alpha_composite(img, shadow)

    draw = ImageDraw.Draw(img)
    for text, x, y in layout.placements:
        draw.text((x, y), text, font=font, fill=LABEL_STYLE["text_color"])
    return img


def _draw_brand_badge(img: Image.Image, layout: BannerLayout):
    """Solid rounded tag with the brand label, top-right. Skipped on narrow images."""
    if layout.width <= BADGE_MIN_CANVAS_WIDTH:
        return

    tag_w = min(int(layout.width * LAYOUT["badge_width"]), LAYOUT["badge_max_px"])
    tag_h = max(1, int(layout.height * LAYOUT["badge_height"]))
    margin = LAYOUT["badge_margin_px"]
    x = layout.width - tag_w - margin
    y = margin

    draw = ImageDraw.Draw(img)
    draw.rounded_rectangle(
        [x, y, x + tag_w, y + tag_h],
        radius=min(LAYOUT["badge_radius_px"], tag_h // 2),
        fill=LABEL_STYLE["badge_fill"],
    )

    font = _get_font(max(1, int(layout.font_size * LAYOUT["badge_font_scale"])), bold=True)
    bbox = draw.textbbox((0, 0), BRAND_LABEL, font=font)
    tw, th = bbox[2] - bbox[0], bbox[3] - bbox[1]
    tx = x + (tag_w - tw) / 2 - bbox[0]
    ty = y + (tag_h - th) / 2 - bbox[1]
    draw.text((tx, ty), BRAND_LABEL, font=font, fill=LABEL_STYLE["badge_text_color"])


def encode_jpeg(img: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    """Flatten RGBA onto black and encode as JPEG."""
    try:
        rgb_img = Image.new("RGB", img.size, (0, 0, 0))
        rgb_img.paste(img, mask=img.split()[3])
        buf = io.BytesIO()
        rgb_img.save(buf, "JPEG", quality=quality)
    except (OSError, ValueError) as e:
        raise EncodeError(f"JPEG encoding failed: {e}") from e
    return buf.getvalue()


# ── Main Entry Point ─────────────────────────────────────────────────────────

def compose(
    design: Design,
    options: LabelOptions | None = None,
    firm_name: str | None = None,
    *,
    loader=load_image,
    encoder=encode_jpeg,
) -> Artifact:
    """
    Render one design into a branded JPEG artifact.

    Raises:
        ImageDecodeError: the design image could not be loaded
        EncodeError: the composited image could not be encoded
    """
    options = options or LabelOptions()
    source = loader(design.image)

    width, height = fit_canvas_size(source.width, source.height)
    img = source.convert("RGBA").resize((width, height), Image.LANCZOS)

    lines = build_label_lines(design, options, firm_name)
    font = _get_font(font_size_for(height), bold=True)
    layout = compute_layout(width, height, lines, font.getlength)

    img = _draw_banner_overlay(img, layout)
    img = _draw_label_text(img, layout, font)
    _draw_brand_badge(img, layout)

    data = encoder(img)
    logger.info(f"Composed design {design.id}: {width}x{height}, {len(layout.placements)} text lines")
    return Artifact(
        data=data,
        width=width,
        height=height,
        design_id=design.id,
        lines=lines,
        layout=layout,
    )
