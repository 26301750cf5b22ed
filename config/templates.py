"""
Branded label style.

Colors, gradient stops and size fractions used by the image compositor.
Sizes are fractions of the canvas so labels scale with the source photo.
"""

LABEL_STYLE = {
    "text_color": (255, 255, 255),
    "shadow_color": (0, 0, 0, 128),
    "shadow_offset": (0, 2),
    "shadow_blur": 2,
    # Banner overlay: black, alpha ramps from top edge to bottom edge
    "overlay_color": (0, 0, 0),
    "overlay_alpha_top": 0.70,
    "overlay_alpha_bottom": 0.95,
    "badge_fill": (79, 70, 229),   # indigo #4f46e5
    "badge_text_color": (255, 255, 255),
}

# Layout (as fractions of canvas dimensions unless noted)
LAYOUT = {
    "banner_height": 0.18,
    "banner_min_px": 120,
    "padding": 0.04,
    "font_size": 0.035,
    "font_min_px": 20,
    "line_spacing": 1.4,
    "badge_width": 0.30,
    "badge_max_px": 200,
    "badge_height": 0.06,
    "badge_margin_px": 20,
    "badge_radius_px": 10,
    "badge_font_scale": 0.7,
}
