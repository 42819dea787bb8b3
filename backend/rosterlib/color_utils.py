"""Shift-code colors and color conversion helpers.

Prefix checks are case-insensitive: 's3' is treated like 'S3' and 'x1' like 'X1'.
"""
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

WHITE = '#FFFFFF'

GOLD = '#F7CA43'
ORANGE = '#FFAC63'
LIGHT_GREEN = '#B5E6A2'
SKY_BLUE = '#7ADCFF'
NAVY = '#215C98'
PALE_YELLOW = '#F2F080'
BLUE = '#0070C0'
MAGENTA = '#D86DCD'
GREEN = '#8ED973'
DARK_GREEN = '#00B050'
YELLOW = '#FFFF00'
GRAY = '#BFBFBF'
RED = '#FF0000'
PINK = '#FC909D'

# Exact shift codes → background color
SHIFT_COLORS: Dict[str, str] = {
    '08H': GOLD,
    '14H': ORANGE,
    '14F': ORANGE,
    '16H': LIGHT_GREEN,
    '16F': LIGHT_GREEN,
    '20H': SKY_BLUE,
    '02H': NAVY,
    '08H+': GOLD,
    '08F': PALE_YELLOW,
    '20F': BLUE,
    'R': MAGENTA,
    'V': GREEN,
    'AU': DARK_GREEN,
}


class ShiftColor(BaseModel):
    """Background color for a shift cell, plus a text color on dark backgrounds."""
    model_config = ConfigDict(frozen=True)

    background: str
    text: Optional[str] = None


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """Convert '#RRGGBB' to an (R, G, B) tuple."""
    h = hex_color.lstrip('#')
    return (int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16))


def is_light_color(hex_color: str) -> bool:
    """Returns True if the color is light (use dark text on it)."""
    r, g, b = hex_to_rgb(hex_color)
    luminance = (0.299 * r + 0.587 * g + 0.114 * b) / 255
    return luminance > 0.5


def _color(background: str) -> ShiftColor:
    return ShiftColor(
        background=background,
        text=None if is_light_color(background) else WHITE,
    )


def classify_shift(code: str) -> Optional[ShiftColor]:
    """Map a raw shift code to its display color, or None to render unstyled.

    Rules, first match wins:
      1. exact code table
      2. prefix rules: S… yellow, /… gray, X… (not 'X') red, 'X' pink
      3. trailing '!' and '/' stripped, exact table again ('08H!' → gold)
      4. any other code ending in '!' is a call-back marker → magenta
    """
    v = (code or '').strip()
    if not v or v == '-':
        return None

    if v in SHIFT_COLORS:
        return _color(SHIFT_COLORS[v])

    upper = v.upper()
    if upper.startswith('S'):
        return _color(YELLOW)
    if upper.startswith('/'):
        return _color(GRAY)
    if upper == 'X':
        return _color(PINK)
    if upper.startswith('X'):
        return _color(RED)

    base = v.rstrip('!/')
    if base in SHIFT_COLORS:
        return _color(SHIFT_COLORS[base])

    if v.endswith('!'):
        return _color(MAGENTA)

    return None
