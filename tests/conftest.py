"""
Pytest configuration and fixtures for Vision Tool Flow tests
"""

import cv2
import numpy as np
import pytest

from schemas import FrameData
from services.vision_service import VisionService


@pytest.fixture
def test_image():
    """BGR test image with a bright rectangle and a gray disc"""
    image = np.zeros((480, 640, 3), dtype=np.uint8)
    cv2.rectangle(image, (100, 100), (300, 300), (255, 255, 255), -1)
    cv2.circle(image, (450, 350), 50, (128, 128, 128), -1)
    return image


@pytest.fixture
def two_circles():
    """256x256 gray image: large disc at (64, 128), small disc at (192, 128)"""
    image = np.zeros((256, 256), dtype=np.uint8)
    cv2.circle(image, (64, 128), 20, 255, -1)
    cv2.circle(image, (192, 128), 10, 255, -1)
    return image


@pytest.fixture
def vertical_step():
    """100x60 gray image, dark for x < 50 and bright from x = 50"""
    image = np.zeros((60, 100), dtype=np.uint8)
    image[:, 50:] = 200
    return image


@pytest.fixture
def bright_stripe():
    """100x60 gray image with a bright vertical stripe at 40 <= x < 60"""
    image = np.zeros((60, 100), dtype=np.uint8)
    image[:, 40:60] = 200
    return image


@pytest.fixture
def horizontal_step():
    """200x200 gray image, dark above y = 100 and bright below"""
    image = np.zeros((200, 200), dtype=np.uint8)
    image[100:, :] = 200
    return image


@pytest.fixture
def disc_image():
    """200x200 gray image with a bright disc of radius 40 at (100, 100)"""
    image = np.zeros((200, 200), dtype=np.uint8)
    cv2.circle(image, (100, 100), 40, 200, -1)
    return image


@pytest.fixture
def pattern_image():
    """200x200 gray image with a bright rectangle from (60, 70) to (120, 110)"""
    image = np.zeros((200, 200), dtype=np.uint8)
    cv2.rectangle(image, (60, 70), (120, 110), 255, -1)
    return image


@pytest.fixture
def depth_map():
    """100x100 float32 Z-map: left half at 5.0, right half at 50.0"""
    z = np.full((100, 100), 5.0, dtype=np.float32)
    z[:, 50:] = 50.0
    return z


@pytest.fixture
def frame(two_circles):
    return FrameData.from_image(cv2.cvtColor(two_circles, cv2.COLOR_GRAY2BGR))


@pytest.fixture
def vision_service():
    """Create VisionService instance for testing"""
    return VisionService()
