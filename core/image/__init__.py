"""
Image utilities.

- converters: Format conversions (NumPy, PIL, base64, channel counts)
- processors: Thumbnails
"""

from core.image.converters import (
    ensure_bgr,
    ensure_grayscale,
    from_base64,
    match_channels,
    to_base64,
)
from core.image.processors import create_thumbnail

__all__ = [
    "ensure_bgr",
    "ensure_grayscale",
    "from_base64",
    "match_channels",
    "to_base64",
    "create_thumbnail",
]
