"""
Tests for line/circle fitting and the caliper-array tools
"""

import math

import numpy as np
import pytest

from core.enums import FitMethod
from vision.measurement.fitting import (
    fit_circle_least_squares,
    fit_circle_ransac,
    fit_line_least_squares,
    fit_line_ransac,
)
from vision.tools import CircleFitTool, LineFitTool


class TestLineFitting:
    def test_least_squares_exact(self):
        points = [(x, 2.0 * x + 1.0) for x in range(10)]
        model = fit_line_least_squares(points)

        assert model.rms_error == pytest.approx(0, abs=1e-3)
        assert model.inliers == 10
        assert math.tan(math.radians(model.angle)) == pytest.approx(2.0, rel=1e-3)

    def test_too_few_points(self):
        assert fit_line_least_squares([(0, 0)]) is None
        assert fit_line_ransac([(0, 0)], 1.0) is None

    def test_ransac_ignores_outlier(self):
        points = [(float(x), 10.0) for x in range(20)] + [(5.0, 60.0)]
        model = fit_line_ransac(points, threshold=1.0)

        assert model.inliers == 20
        assert model.rms_error == pytest.approx(0, abs=1e-3)
        assert model.project(5.0, 60.0)[1] == pytest.approx(10.0, abs=1e-3)


class TestCircleFitting:
    @pytest.fixture
    def circle_points(self):
        return [(50 + 20 * math.cos(t), 40 + 20 * math.sin(t)) for t in np.linspace(0, 2 * math.pi, 12, endpoint=False)]

    def test_least_squares_exact(self, circle_points):
        model = fit_circle_least_squares(circle_points)

        assert model.center == pytest.approx((50, 40), abs=1e-6)
        assert model.radius == pytest.approx(20, abs=1e-6)

    def test_too_few_points(self):
        assert fit_circle_least_squares([(0, 0), (1, 1)]) is None

    def test_ransac_ignores_outlier(self, circle_points):
        model = fit_circle_ransac(circle_points + [(0.0, 0.0)], threshold=1.0)

        assert model.inliers == 12
        assert model.radius == pytest.approx(20, abs=1e-6)


class TestLineFitTool:
    @pytest.fixture
    def tool(self):
        tool = LineFitTool()
        tool.set_parameters(
            {
                "start_point": [20, 100],
                "end_point": [180, 100],
                "num_calipers": 8,
                "search_length": 40,
            }
        )
        return tool

    def test_caliper_centers(self, tool):
        centers, direction = tool.caliper_centers()

        assert len(centers) == 8
        assert centers[0] == pytest.approx((20, 100))
        assert centers[-1] == pytest.approx((180, 100))
        assert direction == pytest.approx((0, 1))

    def test_fits_horizontal_edge(self, tool, horizontal_step):
        result = tool.execute(horizontal_step)

        assert result.success
        assert result.data["FoundCount"] == 8
        assert result.data["TotalCalipers"] == 8
        assert abs(math.sin(math.radians(result.data["LineAngle"]))) < 0.01
        assert result.data["LinePointY"] == pytest.approx(99.5, abs=0.6)
        assert result.data["StartX"] == pytest.approx(20, abs=0.5)
        assert result.data["FitError"] < 0.5

    def test_ransac(self, tool, horizontal_step):
        tool.params.fit_method = FitMethod.RANSAC
        result = tool.execute(horizontal_step)

        assert result.success
        assert result.data["InlierCount"] == 8

    def test_too_few_edges(self, tool):
        result = tool.execute(np.zeros((200, 200), dtype=np.uint8))

        assert not result.success
        assert result.data["FoundCount"] == 0
        assert result.overlay_image is not None


class TestCircleFitTool:
    @pytest.fixture
    def tool(self):
        tool = CircleFitTool()
        tool.set_parameters(
            {
                "center_point": [100, 100],
                "expected_radius": 40,
                "num_calipers": 12,
                "search_length": 30,
            }
        )
        return tool

    def test_full_circle_angles_do_not_overlap(self, tool):
        angles = tool.caliper_angles()

        assert len(angles) == 12
        assert angles[-1] == pytest.approx(math.radians(330))

    def test_arc_angles_include_end(self, tool):
        tool.set_parameters({"start_angle": 0, "end_angle": 90, "num_calipers": 4})
        assert tool.caliper_angles()[-1] == pytest.approx(math.radians(90))

    def test_fits_disc(self, tool, disc_image):
        result = tool.execute(disc_image)

        assert result.success
        assert result.data["FoundCount"] == 12
        assert result.data["CenterX"] == pytest.approx(100, abs=1.0)
        assert result.data["CenterY"] == pytest.approx(100, abs=1.0)
        assert result.data["Radius"] == pytest.approx(40, abs=1.5)
        assert result.data["Diameter"] == pytest.approx(2 * result.data["Radius"])

    def test_end_angle_not_before_start(self, tool):
        tool.set_parameters({"start_angle": 90, "end_angle": 45})
        assert tool.params.end_angle == 90
