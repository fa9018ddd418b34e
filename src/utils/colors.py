"""
Marking colour helpers.

Projects store their marking colour as three 0-255 integer channels;
the application works with "#rrggbb" strings.
"""

import logging
from typing import Tuple

logger = logging.getLogger(__name__)


def rgb_to_hex(red: int, green: int, blue: int) -> str:
    """Build "#rrggbb" from three 0-255 channels."""
    for channel in (red, green, blue):
        if not 0 <= int(channel) <= 255:
            raise ValueError(f"Colour channel out of range: {channel}")
    return "#" + "".join(f"{int(channel):02x}" for channel in (red, green, blue))


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    """
    Split "#rrggbb" (leading # optional) into its three channels.

    Raises:
        ValueError: if the value is not six hex digits
    """
    hex_digits = value[1:] if value.startswith("#") else value
    if len(hex_digits) != 6:
        raise ValueError(f"Invalid hex colour: {value!r}")
    try:
        return (
            int(hex_digits[0:2], 16),
            int(hex_digits[2:4], 16),
            int(hex_digits[4:6], 16),
        )
    except ValueError:
        raise ValueError(f"Invalid hex colour: {value!r}")


def text_color_for_background(hex_color: str) -> str:
    """
    Pick black or white text for a background colour.

    Uses the W3C luminance formula; light backgrounds (> 0.5) get black.
    Invalid input falls back to black.
    """
    try:
        red, green, blue = hex_to_rgb(hex_color or "")
    except ValueError:
        logger.debug(f"Could not parse colour {hex_color!r}, using black text")
        return "#000000"

    luminance = (0.299 * red + 0.587 * green + 0.114 * blue) / 255
    return "#000000" if luminance > 0.5 else "#FFFFFF"
