"""
Layout engine for the branded banner.

Pure geometry: given a canvas size, the logical text lines and a width
measure, computes the banner strip, font sizing and the word-wrapped
sub-lines with their draw positions. No pixels are touched here, so the
compositor and the tests share exactly the same layout decisions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from config.settings import FALLBACK_CANVAS_SIZE, MAX_CANVAS_HEIGHT, MAX_CANVAS_WIDTH
from config.templates import LAYOUT

Measure = Callable[[str], float]


@dataclass
class BannerLayout:
    width: int
    height: int
    banner_top: int
    banner_height: int
    padding: int
    font_size: int
    line_height: float
    max_text_width: int
    wrapped: list[list[str]] = field(default_factory=list)
    placements: list[tuple[str, int, int]] = field(default_factory=list)

    @property
    def sub_lines(self) -> list[str]:
        return [text for text, _, _ in self.placements]


def fit_canvas_size(
    width: int,
    height: int,
    max_width: int = MAX_CANVAS_WIDTH,
    max_height: int = MAX_CANVAS_HEIGHT,
) -> tuple[int, int]:
    """Scale (width, height) down into the bounding box, keeping aspect ratio."""
    if width <= 0 or height <= 0:
        width, height = FALLBACK_CANVAS_SIZE

    if width > max_width or height > max_height:
        scale = min(max_width / width, max_height / height)
        width = width * scale
        height = height * scale

    return max(1, int(width)), max(1, int(height))


def wrap_line(text: str, max_width: float, measure: Measure) -> list[str]:
    """Greedy word wrap.

    A word is appended to the running line unless the candidate would exceed
    max_width and the running line already has content. A single word wider
    than max_width is never split; it gets a sub-line of its own. Words are
    split on single spaces, so a line that fits comes back unchanged.
    """
    lines = []
    current = ""
    for word in text.split(" "):
        candidate = f"{current} {word}" if current else word
        if current and measure(candidate) > max_width:
            lines.append(current.rstrip())
            current = word
        else:
            current = candidate
    if current.strip():
        lines.append(current.rstrip())
    return lines


def font_size_for(height: int) -> int:
    return max(LAYOUT["font_min_px"], int(height * LAYOUT["font_size"]))


def compute_layout(width: int, height: int, lines: list[str], measure: Measure) -> BannerLayout:
    """Compute banner geometry and wrapped line placement for a canvas."""
    banner_height = max(int(height * LAYOUT["banner_height"]), LAYOUT["banner_min_px"])
    padding = int(width * LAYOUT["padding"])
    font_size = font_size_for(height)
    line_height = font_size * LAYOUT["line_spacing"]
    max_text_width = width - padding * 2
    banner_top = height - banner_height

    layout = BannerLayout(
        width=width,
        height=height,
        banner_top=banner_top,
        banner_height=banner_height,
        padding=padding,
        font_size=font_size,
        line_height=line_height,
        max_text_width=max_text_width,
    )

    # Each logical line wraps on its own; order is kept top to bottom.
    y = float(banner_top + padding)
    for line in lines:
        sub_lines = wrap_line(line, max_text_width, measure)
        layout.wrapped.append(sub_lines)
        for sub in sub_lines:
            layout.placements.append((sub, padding, int(y)))
            y += line_height

    return layout
