"""
Shared FastAPI dependencies.

The ``VisionService`` and the settings live in ``app.state``; routers
reach them through these functions.
"""

import logging
from typing import Any, Dict

import numpy as np
from fastapi import HTTPException, Request

from config import get_settings
from core.exceptions import InvalidImageError
from core.image.converters import from_base64
from services.vision_service import VisionService

logger = logging.getLogger(__name__)


def get_vision_service(request: Request) -> VisionService:
    """
    Get the VisionService instance from app state.

    Raises:
        HTTPException: If the service was not initialized
    """
    try:
        return request.app.state.vision_service
    except AttributeError as e:
        logger.error(f"Vision service not initialized in app state: {e}")
        raise HTTPException(status_code=500, detail="Internal server error: Vision service not initialized")


def get_config(request: Request) -> Dict[str, Any]:
    try:
        return request.app.state.config
    except AttributeError:
        logger.warning("Config not found in app state, using defaults")
        return get_settings().to_dict()


def decode_frame_image(image_base64: str) -> np.ndarray:
    """
    Decode a request image and enforce the configured size limit.

    Raises:
        InvalidImageError: Undecodable or oversized payload
    """
    max_mb = get_settings().pipeline.max_image_size_mb
    if len(image_base64) * 3 / 4 > max_mb * 1024 * 1024:
        raise InvalidImageError(f"Image exceeds {max_mb} MB")
    return from_base64(image_base64)
