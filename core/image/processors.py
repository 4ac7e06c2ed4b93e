"""
Image processing operations.

Thumbnail creation for API responses.
"""

import logging
from typing import Tuple, Union

import numpy as np
from PIL import Image

from core.image.converters import numpy_to_pil, pil_to_numpy, to_base64, to_display_8u

logger = logging.getLogger(__name__)


def create_thumbnail(
    image: Union[np.ndarray, Image.Image],
    width: int = 320,
    maintain_aspect: bool = True,
    quality: int = 70,
) -> Tuple[np.ndarray, str]:
    """
    Create thumbnail from image.

    Args:
        image: Input image (NumPy array or PIL Image)
        width: Target width in pixels
        maintain_aspect: If True, maintain aspect ratio
        quality: JPEG quality of the encoded thumbnail

    Returns:
        Tuple of (thumbnail as NumPy array, thumbnail as base64 string)
    """
    try:
        if isinstance(image, np.ndarray):
            pil_image = numpy_to_pil(to_display_8u(image))
        else:
            pil_image = image.copy()

        if maintain_aspect:
            aspect_ratio = pil_image.height / pil_image.width
            height = max(1, int(width * aspect_ratio))
        else:
            height = width

        pil_image.thumbnail((width, height), Image.Resampling.LANCZOS)

        thumb_array = pil_to_numpy(pil_image)
        thumb_base64 = to_base64(pil_image, format="JPEG", quality=quality)

        return thumb_array, thumb_base64

    except Exception as e:
        logger.error(f"Failed to create thumbnail: {e}")
        raise
