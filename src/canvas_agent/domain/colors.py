"""Color normalization and component themes."""

from __future__ import annotations

import re

from .domain_type import ThemeName

NAMED_COLORS: dict[str, str] = {
    "red": "#FF0000",
    "green": "#00FF00",
    "blue": "#0000FF",
    "yellow": "#FFFF00",
    "cyan": "#00FFFF",
    "magenta": "#FF00FF",
    "orange": "#FFA500",
    "purple": "#800080",
    "pink": "#FFC0CB",
    "brown": "#A52A2A",
    "gray": "#808080",
    "grey": "#808080",
    "light gray": "#D3D3D3",
    "light grey": "#D3D3D3",
    "dark gray": "#A9A9A9",
    "dark grey": "#A9A9A9",
    "light blue": "#ADD8E6",
    "dark blue": "#00008B",
    "light green": "#90EE90",
    "dark green": "#006400",
    "black": "#000000",
    "white": "#FFFFFF",
}

DEFAULT_COLOR = "#000000"

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")


def normalize_color(value: str | None, default: str = DEFAULT_COLOR) -> str:
    """Turn a color name or hex string into uppercase "#RRGGBB".

    Unknown names and empty values fall back to ``default``.

    Example:
        >>> normalize_color("red")
        '#FF0000'
        >>> normalize_color("3b82f6")
        '#3B82F6'
    """
    if not value:
        return default
    cleaned = " ".join(value.strip().lower().split())
    if cleaned in NAMED_COLORS:
        return NAMED_COLORS[cleaned]
    match = _HEX_RE.match(cleaned)
    if match is None:
        return default
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits.upper()}"


# ---------------------------------------------------------------------------
# Themes
# ---------------------------------------------------------------------------

THEMES: dict[ThemeName, dict[str, str]] = {
    ThemeName.LIGHT: {
        "bg": "#ffffff",
        "border": "#e5e7eb",
        "text_primary": "#111827",
        "text_secondary": "#6b7280",
        "input_bg": "#ffffff",
        "input_border": "#d1d5db",
        "button_bg": "#3b82f6",
        "button_border": "#2563eb",
        "button_text": "#ffffff",
        "navbar_bg": "#f9fafb",
        "card_bg": "#ffffff",
        "card_header_bg": "#f9fafb",
        "card_footer_bg": "#f9fafb",
        "shadow": "#00000026",
        "sidebar_bg": "#f9fafb",
        "sidebar_item_bg": "#ffffff",
        "sidebar_item_border": "#e5e7eb",
    },
    ThemeName.DARK: {
        "bg": "#1f2937",
        "border": "#374151",
        "text_primary": "#f9fafb",
        "text_secondary": "#d1d5db",
        "input_bg": "#374151",
        "input_border": "#4b5563",
        "button_bg": "#3b82f6",
        "button_border": "#2563eb",
        "button_text": "#ffffff",
        "navbar_bg": "#111827",
        "card_bg": "#1f2937",
        "card_header_bg": "#374151",
        "card_footer_bg": "#374151",
        "shadow": "#00000066",
        "sidebar_bg": "#1f2937",
        "sidebar_item_bg": "#374151",
        "sidebar_item_border": "#4b5563",
    },
    ThemeName.BLUE: {
        "bg": "#eff6ff",
        "border": "#93c5fd",
        "text_primary": "#1e3a8a",
        "text_secondary": "#3b82f6",
        "input_bg": "#ffffff",
        "input_border": "#93c5fd",
        "button_bg": "#3b82f6",
        "button_border": "#2563eb",
        "button_text": "#ffffff",
        "navbar_bg": "#3b82f6",
        "card_bg": "#ffffff",
        "card_header_bg": "#dbeafe",
        "card_footer_bg": "#f0f9ff",
        "shadow": "#3b82f633",
        "sidebar_bg": "#dbeafe",
        "sidebar_item_bg": "#bfdbfe",
        "sidebar_item_border": "#93c5fd",
    },
    ThemeName.GREEN: {
        "bg": "#f0fdf4",
        "border": "#86efac",
        "text_primary": "#14532d",
        "text_secondary": "#16a34a",
        "input_bg": "#ffffff",
        "input_border": "#86efac",
        "button_bg": "#22c55e",
        "button_border": "#16a34a",
        "button_text": "#ffffff",
        "navbar_bg": "#22c55e",
        "card_bg": "#ffffff",
        "card_header_bg": "#dcfce7",
        "card_footer_bg": "#f0fdf4",
        "shadow": "#22c55e33",
        "sidebar_bg": "#dcfce7",
        "sidebar_item_bg": "#bbf7d0",
        "sidebar_item_border": "#86efac",
    },
}


def theme_colors(theme: ThemeName | str | None) -> dict[str, str]:
    """Palette for a theme name; unknown or missing names use the light theme."""
    try:
        return THEMES[ThemeName(theme)] if theme else THEMES[ThemeName.LIGHT]
    except ValueError:
        return THEMES[ThemeName.LIGHT]


__all__ = ["DEFAULT_COLOR", "NAMED_COLORS", "THEMES", "normalize_color", "theme_colors"]
