"""
Color parser: textual color specs -> 8-bit RGBA.

Accepted forms:
    #RRGGBB          alpha taken from the opacity argument
    rgb(r, g, b)     alpha taken from the opacity argument
    rgba(r, g, b, a) alpha = round(a * 255), a in 0..1, opacity ignored

Out-of-range values are rejected, never clamped.
"""
import math
import re
from typing import NamedTuple

from photo_overlay.errors import InvalidColorFormat

_HEX_RE = re.compile(r'^#([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$')
_INT_RE = re.compile(r'^\d+$')


class RGBA(NamedTuple):
    r: int
    g: int
    b: int
    a: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _alpha_from_opacity(color_text: str, opacity: float) -> int:
    if not 0.0 <= opacity <= 1.0:
        raise InvalidColorFormat(color_text, f"opacity {opacity} outside 0..1")
    return _round_half_up(opacity * 255)


def _parse_channel(color_text: str, raw: str) -> int:
    if not _INT_RE.match(raw):
        raise InvalidColorFormat(color_text, f"channel {raw!r} is not an integer")
    value = int(raw)
    if value > 255:
        raise InvalidColorFormat(color_text, f"channel {value} outside 0..255")
    return value


def _function_args(color_text: str, text: str, prefix: str, count: int):
    inner = text[len(prefix):-1]
    parts = [p.strip() for p in inner.split(',')]
    if len(parts) != count:
        raise InvalidColorFormat(color_text, f"expected {count} components, got {len(parts)}")
    return parts


def parse_color(color_text: str, opacity: float = 1.0) -> RGBA:
    """
    Parse a textual color.

    Args:
        color_text: '#RRGGBB', 'rgb(r,g,b)' or 'rgba(r,g,b,a)'
        opacity: 0..1 alpha used by the hex and rgb() forms

    Returns:
        RGBA tuple of 0..255 ints

    Raises:
        InvalidColorFormat: anything else, naming the offending input
    """
    if not isinstance(color_text, str):
        raise InvalidColorFormat(repr(color_text), "not a string")

    text = color_text.strip()
    lowered = text.lower()

    if lowered.startswith('rgba(') and lowered.endswith(')'):
        r, g, b, a = _function_args(color_text, text, 'rgba(', 4)
        try:
            alpha = float(a)
        except ValueError:
            raise InvalidColorFormat(color_text, f"alpha {a!r} is not a number")
        if not 0.0 <= alpha <= 1.0:
            raise InvalidColorFormat(color_text, f"alpha {a} outside 0..1")
        return RGBA(
            _parse_channel(color_text, r),
            _parse_channel(color_text, g),
            _parse_channel(color_text, b),
            _round_half_up(alpha * 255),
        )

    if lowered.startswith('rgb(') and lowered.endswith(')'):
        r, g, b = _function_args(color_text, text, 'rgb(', 3)
        return RGBA(
            _parse_channel(color_text, r),
            _parse_channel(color_text, g),
            _parse_channel(color_text, b),
            _alpha_from_opacity(color_text, opacity),
        )

    match = _HEX_RE.match(text)
    if match:
        r, g, b = (int(h, 16) for h in match.groups())
        return RGBA(r, g, b, _alpha_from_opacity(color_text, opacity))

    raise InvalidColorFormat(color_text)
