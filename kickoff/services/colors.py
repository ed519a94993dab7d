"""Hex color parsing and WCAG contrast."""
from __future__ import annotations

import re

_HEX_COLOR = re.compile(r"^#?([A-Fa-f0-9]{6})$")


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    match = _HEX_COLOR.match(value)
    if not match:
        raise ValueError(f"Invalid hex color: {value}")
    number = int(match.group(1), 16)
    return (number >> 16) & 255, (number >> 8) & 255, number & 255


def _channel_to_linear(channel: int) -> float:
    srgb = channel / 255
    return srgb / 12.92 if srgb <= 0.03928 else ((srgb + 0.055) / 1.055) ** 2.4


def relative_luminance(value: str) -> float:
    r, g, b = (_channel_to_linear(c) for c in hex_to_rgb(value))
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def contrast_ratio(color_a: str, color_b: str) -> float:
    """WCAG contrast ratio between two #RRGGBB colors (1.0 to 21.0)."""
    lum_a = relative_luminance(color_a)
    lum_b = relative_luminance(color_b)
    brighter, darker = max(lum_a, lum_b), min(lum_a, lum_b)
    return (brighter + 0.05) / (darker + 0.05)
