"""
Tests for ROIHandler and the ROI model
"""

import numpy as np
import pytest

from core.roi_handler import ROIHandler
from schemas import ROI


class TestROI:
    def test_normalized_negative_extent(self):
        roi = ROI(x=50, y=40, width=-20, height=-10)
        assert roi.normalized() == ROI(x=30, y=30, width=20, height=10)

    def test_clip_to_image(self):
        roi = ROI(x=-10, y=90, width=50, height=50).clip(100, 100)
        assert roi == ROI(x=0, y=90, width=40, height=10)

    def test_is_empty(self):
        assert ROI().is_empty
        assert not ROI(width=1, height=1).is_empty


class TestROIHandler:
    @pytest.fixture
    def image(self):
        image = np.zeros((100, 120, 3), dtype=np.uint8)
        image[:, :, 2] = np.arange(120, dtype=np.uint8)[None, :]
        return image

    def test_adjust_roi_accepts_dict(self, image):
        roi = ROIHandler.adjust_roi(image, {"x": 100, "y": 80, "width": 50, "height": 50})
        assert roi == ROI(x=100, y=80, width=20, height=20)

    def test_work_region_without_roi_aliases_input(self, image):
        region = ROIHandler.extract_work_region(image, False, ROI(x=0, y=0, width=10, height=10))
        assert region is image

    def test_work_region_crops_copy(self, image):
        region = ROIHandler.extract_work_region(image, True, ROI(x=10, y=20, width=30, height=40))
        assert region.shape == (40, 30, 3)
        assert region[0, 0, 2] == 10
        region[:] = 0
        assert image[20, 10, 2] == 10

    def test_empty_roi_falls_back_to_full_image(self, image):
        roi = ROI(x=500, y=500, width=10, height=10)
        assert ROIHandler.extract_work_region(image, True, roi) is image
        assert ROIHandler.roi_offset(image, True, roi) == (0, 0)

    def test_roi_offset(self, image):
        assert ROIHandler.roi_offset(image, True, ROI(x=10, y=20, width=30, height=40)) == (10, 20)
        assert ROIHandler.roi_offset(image, False, ROI(x=10, y=20, width=30, height=40)) == (0, 0)

    def test_composite_pastes_gray_region_into_color_frame(self, image):
        roi = ROI(x=10, y=20, width=30, height=40)
        processed = np.full((40, 30), 255, dtype=np.uint8)

        result = ROIHandler.composite_result(image, processed, roi)

        assert result.shape == image.shape
        assert (result[20:60, 10:40] == 255).all()
        assert (result[0:20] == image[0:20]).all()
        assert result is not image
