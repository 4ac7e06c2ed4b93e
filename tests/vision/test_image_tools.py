"""
Tests for the image processing tools
"""

import cv2
import numpy as np
import pytest

from core.constants import ErrorMessages
from core.enums import BlurType, HistogramOperation, MorphOperation, ThresholdType
from schemas import ROI
from vision.tools import (
    BlurParams,
    BlurTool,
    EdgeDetectionTool,
    GrayscaleTool,
    HeightSlicerTool,
    HistogramTool,
    MorphologyTool,
    ThresholdParams,
    ThresholdTool,
)


class TestToolBase:
    def test_missing_image_fails(self):
        result = GrayscaleTool().execute(None)

        assert not result.success
        assert result.message == ErrorMessages.NO_INPUT_IMAGE

    def test_execute_caches_result(self, test_image):
        tool = GrayscaleTool()
        result = tool.execute(test_image)

        assert tool.last_result is result
        assert tool.execution_time >= 0

    def test_internal_error_is_contained(self, test_image, monkeypatch):
        tool = BlurTool()

        def boom(region):
            raise RuntimeError("kaboom")

        monkeypatch.setattr(tool, "_process", boom)
        result = tool.execute(test_image)

        assert not result.success
        assert "kaboom" in result.message

    def test_clone_is_independent(self):
        tool = BlurTool(name="Smooth")
        tool.use_roi = True
        tool.roi = ROI(x=1, y=2, width=3, height=4)
        tool.params.kernel_size = 9

        twin = tool.clone()
        twin.params.kernel_size = 3
        twin.roi.x = 50

        assert twin.id != tool.id
        assert twin.name == "Smooth"
        assert tool.params.kernel_size == 9
        assert tool.roi.x == 1
        assert twin.last_result is None

    def test_set_parameters_keeps_previous_on_error(self):
        tool = BlurTool()
        tool.set_parameters({"kernel_size": 7})

        errors = tool.set_parameters({"kernel_size": "large", "sigma_x": 1.5})

        assert len(errors) == 1
        assert errors[0].startswith("kernel_size")
        assert tool.params.kernel_size == 7
        assert tool.params.sigma_x == 1.5

    def test_enum_spellings(self):
        tool = BlurTool()
        assert tool.set_parameters({"blur_type": "Median"}) == []
        assert tool.params.blur_type == BlurType.MEDIAN

        tool.set_parameters({"blur_type": "BILATERAL"})
        assert tool.params.blur_type == BlurType.BILATERAL


class TestGrayscaleTool:
    def test_converts_color(self, test_image):
        result = GrayscaleTool().execute(test_image)

        assert result.success
        assert result.output_image.ndim == 2
        assert result.data["Channels"] == 1
        assert result.data["Width"] == 640
        assert result.data["Height"] == 480

    def test_roi_keeps_frame_channels(self, test_image):
        tool = GrayscaleTool()
        tool.use_roi = True
        tool.roi = ROI(x=0, y=0, width=50, height=50)

        result = tool.execute(test_image)

        assert result.output_image.shape == test_image.shape

    def test_input_not_modified(self, test_image):
        before = test_image.copy()
        GrayscaleTool().execute(test_image)
        assert np.array_equal(before, test_image)


class TestBlurTool:
    def test_kernel_forced_odd(self):
        assert BlurParams(kernel_size=4).kernel_size == 5
        assert BlurParams(kernel_size=0).kernel_size == 1

    @pytest.mark.parametrize("blur_type", list(BlurType))
    def test_all_filters(self, test_image, blur_type):
        tool = BlurTool()
        tool.params.blur_type = blur_type

        result = tool.execute(test_image)

        assert result.success
        assert result.output_image.shape == test_image.shape
        assert result.data["BlurType"] == blur_type.value

    def test_roi_only_changes_region(self, test_image):
        tool = BlurTool()
        tool.use_roi = True
        tool.roi = ROI(x=80, y=80, width=40, height=40)
        tool.params.kernel_size = 15

        output = tool.execute(test_image).output_image

        assert np.array_equal(output[300:, 400:], test_image[300:, 400:])
        assert not np.array_equal(output[80:120, 80:120], test_image[80:120, 80:120])


class TestThresholdTool:
    def test_values_clamped(self):
        params = ThresholdParams(threshold_value=300, max_value=-5, block_size=4)
        assert params.threshold_value == 255
        assert params.max_value == 0
        assert params.block_size == 5

    def test_fixed(self, two_circles):
        tool = ThresholdTool()
        result = tool.execute(two_circles)

        assert result.success
        assert result.data["Method"] == "Fixed"
        assert result.data["CalculatedThreshold"] == 128
        assert set(np.unique(result.output_image)) <= {0, 255}
        assert result.data["WhitePixelCount"] == int(np.count_nonzero(two_circles > 128))

    def test_otsu_reports_threshold(self, two_circles):
        tool = ThresholdTool()
        tool.params.use_otsu = True

        result = tool.execute(two_circles)

        assert result.data["Method"] == "Otsu"
        assert 0 <= result.data["CalculatedThreshold"] < 255
        assert "value:" in result.message

    def test_message_matches_each_run(self, two_circles):
        tool = ThresholdTool()
        tool.params.use_otsu = True
        otsu = tool.execute(two_circles)

        tool.params.use_otsu = False
        tool.params.threshold_value = 77
        fixed = tool.execute(two_circles)

        assert f"{otsu.data['CalculatedThreshold']:.1f}" in otsu.message
        assert fixed.message == "Threshold completed (value: 77.0)"
        assert tool.clone().execute(two_circles).message == fixed.message

    def test_inverted(self, two_circles):
        tool = ThresholdTool()
        tool.params.threshold_type = ThresholdType.BINARY_INV

        result = tool.execute(two_circles)

        assert result.output_image[0, 0] == 255
        assert result.output_image[128, 64] == 0

    def test_adaptive(self, test_image):
        tool = ThresholdTool()
        tool.params.use_adaptive = True

        result = tool.execute(test_image)

        assert result.success
        assert result.data["Method"] == "Adaptive"


class TestEdgeDetectionTool:
    @pytest.mark.parametrize("method", ["canny", "sobel", "scharr", "laplacian"])
    def test_methods_find_edges(self, test_image, method):
        tool = EdgeDetectionTool()
        tool.set_parameters({"method": method})

        result = tool.execute(test_image)

        assert result.success
        assert result.data["EdgePixelCount"] > 0
        assert 0 < result.data["EdgePixelRatio"] < 1


class TestMorphologyTool:
    def test_dilate_grows_region(self, two_circles):
        tool = MorphologyTool()
        tool.set_parameters({"operation": "dilate", "kernel_width": 5, "kernel_height": 5})

        result = tool.execute(two_circles)

        assert np.count_nonzero(result.output_image) > np.count_nonzero(two_circles)
        assert result.data["KernelSize"] == "5x5"

    def test_erode_shrinks_region(self, two_circles):
        tool = MorphologyTool()
        tool.params.operation = MorphOperation.ERODE

        result = tool.execute(two_circles)

        assert np.count_nonzero(result.output_image) < np.count_nonzero(two_circles)
        assert result.data["Operation"] == "erode"


class TestHistogramTool:
    def test_out_of_range_values_clamped(self):
        tool = HistogramTool()
        errors = tool.set_parameters({"clip_limit": 0, "tile_grid_width": 0, "tile_grid_height": -3})

        assert errors == []
        assert tool.params.clip_limit == pytest.approx(0.01)
        assert tool.params.tile_grid_width == 1
        assert tool.params.tile_grid_height == 1

    def test_analyze_statistics(self, two_circles):
        result = HistogramTool().execute(two_circles)

        assert result.success
        assert result.data["MinValue"] == 0
        assert result.data["MaxValue"] == 255
        assert result.data["MeanValue"] == pytest.approx(float(two_circles.mean()), abs=1e-6)
        assert np.array_equal(result.output_image, two_circles)
        assert result.overlay_image.shape == (400, 512, 3)

    @pytest.mark.parametrize("operation", [HistogramOperation.EQUALIZE, HistogramOperation.CLAHE])
    def test_enhancement(self, test_image, operation):
        tool = HistogramTool()
        tool.params.operation = operation

        result = tool.execute(test_image)

        assert result.success
        assert result.output_image.ndim == 2


class TestHeightSlicerTool:
    def test_rejects_non_depth_input(self, two_circles):
        result = HeightSlicerTool().execute(two_circles)

        assert not result.success
        assert "float" in result.message

    def test_slices_band(self, depth_map):
        tool = HeightSlicerTool()
        tool.set_parameters({"min_z": 0.0, "max_z": 10.0})

        result = tool.execute(depth_map)

        assert result.success
        assert result.output_image.dtype == np.uint8
        assert result.data["ValidPixelCount"] == 50 * 100
        assert result.data["ValidPixelRatio"] == pytest.approx(0.5)
        assert (result.output_image[:, 50:] == 0).all()
        assert (result.output_image[:, :50] > 0).all()

    def test_max_not_below_min(self):
        tool = HeightSlicerTool()
        tool.set_parameters({"min_z": 20.0, "max_z": 10.0})
        assert tool.params.max_z == 20.0

    def test_roi_output_is_full_frame(self, depth_map):
        tool = HeightSlicerTool()
        tool.use_roi = True
        tool.roi = ROI(x=0, y=0, width=20, height=20)

        result = tool.execute(depth_map)

        assert result.output_image.shape == depth_map.shape
        assert result.data["ValidPixelCount"] == 400
