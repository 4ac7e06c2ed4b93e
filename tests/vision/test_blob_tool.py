"""
Tests for BlobTool
"""

import cv2
import numpy as np
import pytest

from core.enums import BlobSortBy, GraphicType
from schemas import ROI
from vision.tools import BlobParams, BlobTool


class TestBlobParams:
    def test_defaults_unbounded(self):
        params = BlobParams()
        assert params.min_area == 100
        assert params.max_area is None
        assert params.max_blob_count == 100

    def test_upper_bound_clamped_to_lower(self):
        params = BlobParams(min_area=200, max_area=100, min_circularity=0.6, max_circularity=0.2)
        assert params.max_area == 200
        assert params.max_circularity == 0.6

    def test_threshold_and_unit_interval_clamped(self):
        params = BlobParams(threshold_value=400, min_convexity=1.5)
        assert params.threshold_value == 255
        assert params.min_convexity == 1.0

    def test_out_of_range_assignment_clamped(self):
        params = BlobParams()
        params.min_area = -5
        params.max_blob_count = 0
        params.min_aspect_ratio = -1.5

        assert params.min_area == 0
        assert params.max_blob_count == 1
        assert params.min_aspect_ratio == 0

    def test_out_of_range_construction_clamped(self):
        params = BlobParams(min_perimeter=-10, max_blob_count=-3)
        assert params.min_perimeter == 0
        assert params.max_blob_count == 1


class TestBlobTool:
    @pytest.fixture
    def tool(self):
        return BlobTool()

    def test_finds_both_blobs_sorted_by_area(self, tool, two_circles):
        result = tool.execute(two_circles)

        assert result.success
        assert result.data["BlobCount"] == 2
        assert result.data["Blob0_Area"] > result.data["Blob1_Area"]
        assert result.data["CenterX"] == pytest.approx(64, abs=1)
        assert result.data["CenterY"] == pytest.approx(128, abs=1)
        assert result.data["Blob1_CenterX"] == pytest.approx(192, abs=1)
        assert [b.id for b in tool.last_blobs] == [0, 1]

    def test_first_blob_measurements(self, tool, two_circles):
        result = tool.execute(two_circles)

        assert result.data["Area"] == pytest.approx(np.pi * 20 * 20, rel=0.02)
        assert result.data["Blob1_Area"] == pytest.approx(np.pi * 10 * 10, rel=0.02)
        assert all(b.circularity > 0.9 for b in tool.last_blobs)
        assert result.data["CenterX"] == pytest.approx(64, abs=0.01)
        assert result.data["CenterY"] == pytest.approx(128, abs=0.01)
        assert result.data["Blob1_CenterX"] == pytest.approx(192, abs=0.01)
        rect = result.data["BoundingRect"]
        assert rect["x"] == pytest.approx(44, abs=1)
        assert rect["width"] == pytest.approx(41, abs=2)

    def test_graphics_one_polygon_per_blob(self, tool, two_circles):
        result = tool.execute(two_circles)

        assert len(result.graphics) == 2
        assert all(g.type == GraphicType.POLYGON for g in result.graphics)
        assert result.overlay_image.shape == (256, 256, 3)

    def test_area_filters(self, tool, two_circles):
        tool.params.min_area = 500
        assert tool.execute(two_circles).data["BlobCount"] == 1

        tool.params.min_area = 100
        tool.params.max_area = 500
        result = tool.execute(two_circles)
        assert result.data["BlobCount"] == 1
        assert result.data["CenterX"] == pytest.approx(192, abs=1)

    def test_sort_ascending(self, tool, two_circles):
        tool.params.sort_descending = False
        result = tool.execute(two_circles)
        assert result.data["CenterX"] == pytest.approx(192, abs=1)

    def test_sort_by_center_x(self, tool, two_circles):
        tool.params.sort_by = BlobSortBy.CENTER_X
        result = tool.execute(two_circles)
        assert result.data["Blob0_CenterX"] > result.data["Blob1_CenterX"]

    def test_max_blob_count(self, tool, two_circles):
        tool.params.max_blob_count = 1
        result = tool.execute(two_circles)

        assert result.data["BlobCount"] == 1
        assert "Blob1_Area" not in result.data

    def test_roi_results_in_frame_coordinates(self, tool, two_circles):
        tool.use_roi = True
        tool.roi = ROI(x=150, y=90, width=80, height=80)

        result = tool.execute(two_circles)

        assert result.data["BlobCount"] == 1
        assert result.data["CenterX"] == pytest.approx(192, abs=1)
        assert result.data["CenterY"] == pytest.approx(128, abs=1)
        assert result.data["BoundingRect"]["x"] >= 150
        assert result.output_image.shape == two_circles.shape

    def test_invert_polarity_finds_dark_blobs(self, tool, two_circles):
        tool.params.invert_polarity = True
        result = tool.execute(255 - two_circles)
        assert result.data["BlobCount"] == 2

    def test_binary_input_without_threshold(self, tool, test_image):
        tool.params.use_internal_threshold = False
        result = tool.execute(test_image)

        # gray disc (128) counts as foreground too
        assert result.data["BlobCount"] == 2

    def test_no_blobs_is_failure(self, tool):
        result = tool.execute(np.zeros((50, 50), dtype=np.uint8))

        assert not result.success
        assert result.data["BlobCount"] == 0
        assert tool.last_blobs == []

    def test_measure_square(self):
        contour = np.array([[[10, 10]], [[10, 29]], [[29, 29]], [[29, 10]]], dtype=np.int32)

        blob = BlobTool.measure(contour)

        assert blob.area == pytest.approx(400)
        assert blob.perimeter == pytest.approx(76)
        assert blob.center == pytest.approx((19.5, 19.5))
        assert blob.bounding_rect == (10, 10, 20, 20)
        assert blob.aspect_ratio == pytest.approx(1.0)
        assert blob.convexity == pytest.approx(1.0)
        assert blob.extent == pytest.approx(1.0)

    def test_measure_line_has_full_convexity(self):
        contour = np.array([[[10, 10]], [[10, 20]]], dtype=np.int32)

        blob = BlobTool.measure(contour)

        assert blob.area == pytest.approx(11)
        assert blob.convexity == 1.0

    def test_thin_line_blob(self, tool):
        image = np.zeros((200, 50), dtype=np.uint8)
        image[20:170, 25] = 255

        result = tool.execute(image)

        assert result.data["BlobCount"] == 1
        assert tool.last_blobs[0].convexity == 1.0

    def test_equal_keys_keep_discovery_order(self, tool):
        image = np.zeros((100, 200), dtype=np.uint8)
        for x in (20, 80, 140):
            image[40:60, x : x + 20] = 255
        contours, _ = cv2.findContours(image, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        discovery = [cv2.boundingRect(c)[0] for c in contours]

        for descending in (True, False):
            tool.params.sort_descending = descending
            tool.execute(image)
            assert [b.bounding_rect[0] for b in tool.last_blobs] == discovery

    def test_repeated_runs_identical(self, tool, two_circles):
        tool.execute(two_circles)
        first = [b.to_dict() for b in tool.last_blobs]
        tool.execute(two_circles)
        assert [b.to_dict() for b in tool.last_blobs] == first


class TestBlobShapeFilters:
    @pytest.fixture
    def shapes(self):
        """Disc at (50, 50), thin bar at the bottom left, L shape on the right"""
        image = np.zeros((200, 250), dtype=np.uint8)
        cv2.circle(image, (50, 50), 20, 255, -1)
        image[150:160, 20:120] = 255
        image[100:180, 150:170] = 255
        image[160:180, 150:230] = 255
        return image

    def test_all_shapes_found(self, shapes):
        assert BlobTool().execute(shapes).data["BlobCount"] == 3

    def test_min_circularity_keeps_disc(self, shapes):
        tool = BlobTool()
        tool.params.min_circularity = 0.5

        result = tool.execute(shapes)

        assert result.data["BlobCount"] == 1
        assert result.data["CenterX"] == pytest.approx(50, abs=0.5)

    def test_max_circularity_drops_disc(self, shapes):
        tool = BlobTool()
        tool.params.max_circularity = 0.5

        result = tool.execute(shapes)

        assert result.data["BlobCount"] == 2
        assert all(b.circularity <= 0.5 for b in tool.last_blobs)

    def test_min_convexity_drops_l_shape(self, shapes):
        tool = BlobTool()
        tool.params.min_convexity = 0.9

        result = tool.execute(shapes)

        assert result.data["BlobCount"] == 2
        assert all(b.convexity >= 0.9 for b in tool.last_blobs)
        assert all(b.bounding_rect[0] < 150 for b in tool.last_blobs)
