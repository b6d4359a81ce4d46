"""
Colour Grammar
===============
Parses pass colour strings into reportlab colours.

Accepted forms:
- ``rgb(r, g, b)`` with decimal components 0-255
- ``#abc`` / ``#aabbcc`` (the ``#`` is optional)

Anything else yields the caller's fallback, so a bad colour never fails a
render.
"""

from __future__ import annotations

import re

from reportlab.lib.colors import Color

_RGB_RE = re.compile(r"rgb\s*\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*\)", re.IGNORECASE)
_HEX_RE = re.compile(r"#?([0-9a-f]{3}|[0-9a-f]{6})", re.IGNORECASE)


def parse_rgb(value: str | None) -> tuple[float, float, float] | None:
    """Return ``(r, g, b)`` in 0..1, or None when ``value`` is not in the grammar."""
    if not value:
        return None
    text = value.strip()

    match = _RGB_RE.fullmatch(text)
    if match:
        components = [int(c) for c in match.groups()]
        if any(c > 255 for c in components):
            return None
        r, g, b = (c / 255 for c in components)
        return (r, g, b)

    match = _HEX_RE.fullmatch(text)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return (
            int(digits[0:2], 16) / 255,
            int(digits[2:4], 16) / 255,
            int(digits[4:6], 16) / 255,
        )

    return None


def is_valid_color(value: str | None) -> bool:
    return parse_rgb(value) is not None


def parse_color(value: str | None, fallback: tuple[float, float, float]) -> Color:
    """Parse ``value`` or fall back to the role's default."""
    rgb = parse_rgb(value)
    if rgb is None:
        rgb = fallback
    return Color(*rgb)
