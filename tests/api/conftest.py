"""
Pytest configuration for API integration tests
"""

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from core.image.converters import to_base64


@pytest.fixture(scope="function")
def client():
    """
    Create a test client with a fresh VisionService in app state.
    Each test gets a fresh service to avoid state contamination.
    """
    from config import get_settings
    from main import app
    from services.vision_service import VisionService

    app.state.vision_service = VisionService()
    app.state.config = get_settings().to_dict()

    # No context manager: the lifespan handler would replace the service
    test_client = TestClient(app, raise_server_exceptions=False)

    yield test_client


@pytest.fixture
def frame_base64():
    """PNG of a 256x256 frame with two bright discs"""
    image = np.zeros((256, 256, 3), dtype=np.uint8)
    cv2.circle(image, (64, 128), 20, (255, 255, 255), -1)
    cv2.circle(image, (192, 128), 10, (255, 255, 255), -1)
    return to_base64(image, format="PNG")
