"""
Image format conversion utilities.

Handles conversions between different image formats:
- NumPy arrays (OpenCV BGR format)
- PIL Images (RGB format)
- Base64 encoded strings
- Grayscale/color conversions
"""

import base64
import binascii
import io
import logging
from typing import Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from core.exceptions import InvalidImageError

logger = logging.getLogger(__name__)


def numpy_to_pil(image: np.ndarray) -> Image.Image:
    """
    Convert NumPy array (OpenCV format) to PIL Image.

    Args:
        image: NumPy array in BGR format (OpenCV)

    Returns:
        PIL Image in RGB format
    """
    if len(image.shape) == 3 and image.shape[2] == 3:
        image_rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    elif len(image.shape) == 3 and image.shape[2] == 4:
        image_rgb = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    else:
        image_rgb = image

    return Image.fromarray(image_rgb)


def pil_to_numpy(image: Image.Image, bgr: bool = True) -> np.ndarray:
    """
    Convert PIL Image to NumPy array.

    Args:
        image: PIL Image
        bgr: If True, convert to BGR format (OpenCV), else keep RGB

    Returns:
        NumPy array
    """
    if image.mode not in ("L", "RGB", "RGBA", "I;16", "F"):
        image = image.convert("RGB")
    array = np.array(image)

    if bgr and len(array.shape) == 3 and array.shape[2] == 3:
        array = cv2.cvtColor(array, cv2.COLOR_RGB2BGR)
    elif bgr and len(array.shape) == 3 and array.shape[2] == 4:
        array = cv2.cvtColor(array, cv2.COLOR_RGBA2BGR)

    return array


def to_base64(
    image: Union[np.ndarray, Image.Image, bytes], format: str = "JPEG", quality: int = 85
) -> str:
    """
    Convert image to base64 string.

    Args:
        image: Input image (NumPy array, PIL Image, or raw bytes)
        format: Image format (JPEG, PNG, etc.)
        quality: JPEG quality (1-100, ignored for PNG)

    Returns:
        Base64 encoded string
    """
    try:
        if isinstance(image, bytes):
            return base64.b64encode(image).decode("utf-8")

        if isinstance(image, np.ndarray):
            image = numpy_to_pil(image)

        buffer = io.BytesIO()
        save_kwargs = {"format": format}

        if format.upper() == "JPEG":
            if image.mode not in ("L", "RGB"):
                image = image.convert("RGB")
            save_kwargs["quality"] = quality
            save_kwargs["optimize"] = True

        image.save(buffer, **save_kwargs)
        return base64.b64encode(buffer.getvalue()).decode("utf-8")

    except Exception as e:
        logger.error(f"Failed to convert image to base64: {e}")
        raise


def from_base64(base64_string: str) -> np.ndarray:
    """
    Convert base64 string to NumPy array.

    Grayscale images stay single-channel; color images come back as BGR.

    Args:
        base64_string: Base64 encoded image (a ``data:`` URL prefix is allowed)

    Returns:
        NumPy array in OpenCV layout

    Raises:
        InvalidImageError: If the payload is not a decodable image
    """
    if "," in base64_string and base64_string.lstrip().startswith("data:"):
        base64_string = base64_string.split(",", 1)[1]

    try:
        image_bytes = base64.b64decode(base64_string, validate=True)
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (binascii.Error, ValueError, UnidentifiedImageError, OSError) as e:
        logger.error(f"Failed to decode base64 image: {e}")
        raise InvalidImageError(f"Cannot decode image: {e}")

    return pil_to_numpy(image, bgr=True)


def ensure_bgr(image: np.ndarray) -> np.ndarray:
    """
    Ensure image is in BGR format (convert from grayscale/BGRA if needed).

    Args:
        image: Input image (grayscale, BGR or BGRA)

    Returns:
        New image in BGR format
    """
    if image.ndim == 2 or (image.ndim == 3 and image.shape[2] == 1):
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image.copy()


def ensure_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Ensure image is grayscale (convert from BGR/BGRA if needed).

    Args:
        image: Input image (grayscale, BGR or BGRA)

    Returns:
        New grayscale image
    """
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if image.ndim == 3:
        return image[:, :, 0].copy()
    return image.copy()


def channel_count(image: np.ndarray) -> int:
    return 1 if image.ndim == 2 else image.shape[2]


def match_channels(image: np.ndarray, reference: np.ndarray) -> np.ndarray:
    """
    Convert ``image`` to the channel count of ``reference``.

    Returns ``image`` unchanged when the counts already agree.
    """
    target = channel_count(reference)
    if channel_count(image) == target:
        return image
    if target == 1:
        return ensure_grayscale(image)
    if target == 4:
        return cv2.cvtColor(ensure_bgr(image), cv2.COLOR_BGR2BGRA)
    return ensure_bgr(image)


def to_display_8u(image: np.ndarray) -> np.ndarray:
    """Min-max scale a non-8-bit image (e.g. a depth map) into uint8."""
    if image.dtype == np.uint8:
        return image
    finite = np.nan_to_num(image.astype(np.float64), nan=0.0, posinf=0.0, neginf=0.0)
    return cv2.normalize(finite, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
