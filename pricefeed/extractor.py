"""
Locate the price field inside the raw page markup.

The page embeds a JSON blob with entries like
``{"name":"Bitcoin","price":64123.5,...}``. We do not parse it: we find the
literal marker and read the digit run right after it. If the layout moves,
extraction returns None instead of guessing.
"""

import math
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)

PRICE_MARKER = '{"name":"Bitcoin","price":'

# Digits start right after the marker.
PRICE_SKIP_OFFSET = 26

# Characters logged after the offset when debugging layout drift.
PRICE_WINDOW = 42


def marker_for(asset_name: str) -> str:
    """Build the marker literal for another asset name."""
    return '{"name":"%s","price":' % asset_name


def extract_price(text: str, marker: str = PRICE_MARKER, offset: Optional[int] = None) -> Optional[float]:
    """Return the price following ``marker`` in ``text``, or None.

    Only ASCII digits are collected, so a fractional part is dropped:
    ``64123.50`` yields ``64123.0``.

    Args:
        text: Full response body.
        marker: Literal that precedes the price field.
        offset: Characters to skip from the start of the marker. Defaults to
            the marker length.
    """
    start = text.find(marker)
    if start == -1:
        logger.debug("price_marker_missing", marker=marker)
        return None

    if offset is None:
        offset = len(marker)
    begin = start + offset
    if begin >= len(text):
        return None

    logger.debug("price_window", window=text[begin:begin + PRICE_WINDOW])

    end = begin
    while end < len(text) and text[end] in "0123456789":
        end += 1

    digits = text[begin:end]
    if not digits:
        return None

    try:
        price = float(digits)
    except ValueError:
        return None

    # too many digits to be a real price
    if math.isinf(price):
        return None
    return price
