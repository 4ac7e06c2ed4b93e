"""
Tests for the caliper tool and its edge scoring primitives
"""

import cv2
import numpy as np
import pytest

from core.enums import CaliperMode, EdgePolarity, GraphicType, ScorerMode
from schemas import ROI, Point
from vision.measurement.edge_scoring import (
    SCORER_PRESETS,
    EdgeCandidate,
    EdgeScorer,
    compute_gradient,
    find_candidates,
    find_pairs,
    sample_profile,
    strongest_edge,
)
from vision.tools import CaliperTool


class TestEdgePrimitives:
    def test_profile_follows_segment(self, vertical_step):
        profile = sample_profile(vertical_step, (10, 30), (90, 30), 5)

        assert len(profile) == 80
        assert profile[0] == pytest.approx(0)
        assert profile[-1] == pytest.approx(200)

    def test_gradient_zero_near_ends(self):
        profile = np.array([0, 0, 0, 0, 10, 10, 10, 10], dtype=np.float64)
        gradient = compute_gradient(profile, 2)

        assert gradient[0] == 0 and gradient[1] == 0
        assert gradient[-1] == 0 and gradient[-2] == 0
        assert gradient[3] > 0

    def test_candidates_subpixel_peak(self):
        gradient = np.array([0, 10, 40, 30, 0], dtype=np.float64)
        (edge,) = find_candidates(gradient, 20)

        assert 2.0 < edge.position < 2.5
        assert edge.polarity == EdgePolarity.DARK_TO_LIGHT

    def test_scorer_prefers_close_edge(self):
        far = EdgeCandidate(position=5.0, strength=100.0, polarity=EdgePolarity.DARK_TO_LIGHT)
        near = EdgeCandidate(position=50.0, strength=60.0, polarity=EdgePolarity.DARK_TO_LIGHT)

        EdgeScorer(*SCORER_PRESETS[ScorerMode.CLOSEST], position_sigma=10.0).score([far, near], 50.0, EdgePolarity.ANY)
        assert near.score > far.score

        EdgeScorer(*SCORER_PRESETS[ScorerMode.MAX_CONTRAST]).score([far, near], 50.0, EdgePolarity.ANY)
        assert far.score > near.score

    def test_pairs_need_opposite_polarity(self):
        rise = EdgeCandidate(position=10.0, strength=50.0, polarity=EdgePolarity.DARK_TO_LIGHT)
        rise2 = EdgeCandidate(position=30.0, strength=50.0, polarity=EdgePolarity.DARK_TO_LIGHT)
        fall = EdgeCandidate(position=31.0, strength=-50.0, polarity=EdgePolarity.LIGHT_TO_DARK)

        pairs = find_pairs([rise, rise2, fall], expected_width=20.0, tolerance=2.0)

        assert len(pairs) == 1
        assert pairs[0].first is rise
        assert pairs[0].width == pytest.approx(21.0)

    def test_strongest_edge_polarity(self):
        profile = np.array([0] * 10 + [100] * 10 + [0] * 10, dtype=np.float64)

        rising = strongest_edge(profile, 10, EdgePolarity.DARK_TO_LIGHT)
        falling = strongest_edge(profile, 10, EdgePolarity.LIGHT_TO_DARK)

        assert rising[0] == pytest.approx(9.5, abs=0.5)
        assert falling[0] == pytest.approx(19.5, abs=0.5)
        assert strongest_edge(profile, 1000, EdgePolarity.ANY) is None


class TestCaliperTool:
    @pytest.fixture
    def tool(self):
        tool = CaliperTool()
        tool.set_parameters({"start_point": [10, 30], "end_point": {"x": 90, "y": 30}, "search_width": 5})
        return tool

    def test_points_accept_lists(self, tool):
        assert tool.params.start_point == Point(x=10, y=30)
        assert tool.params.end_point == Point(x=90, y=30)

    def test_single_edge(self, tool, vertical_step):
        result = tool.execute(vertical_step)

        assert result.success
        assert result.data["EdgeCount"] == 1
        assert result.data["EdgeX"] == pytest.approx(49.5, abs=1.0)
        assert result.data["EdgeY"] == pytest.approx(30, abs=0.5)
        assert result.data["EdgePolarity"] == EdgePolarity.DARK_TO_LIGHT.value
        assert len(tool.last_profile) == 80

    def test_polarity_filter(self, tool, vertical_step):
        tool.params.polarity = EdgePolarity.LIGHT_TO_DARK
        result = tool.execute(vertical_step)

        assert not result.success
        assert result.data["EdgeCount"] == 0

    def test_edge_pair_width(self, tool, bright_stripe):
        tool.set_parameters({"mode": "edge_pair", "expected_width": 20, "width_tolerance": 3})

        result = tool.execute(bright_stripe)

        assert result.success
        assert result.data["PairCount"] == 1
        assert result.data["Width"] == pytest.approx(20, abs=1.0)
        assert result.data["CenterX"] == pytest.approx(49.5, abs=1.0)

    def test_edge_pair_out_of_tolerance(self, tool, bright_stripe):
        tool.params.mode = CaliperMode.EDGE_PAIR
        tool.params.expected_width = 50
        tool.params.width_tolerance = 5

        result = tool.execute(bright_stripe)

        assert not result.success
        assert result.data["PairCount"] == 0

    def test_short_search_line_fails(self, vertical_step):
        tool = CaliperTool()
        tool.set_parameters({"start_point": [10, 10], "end_point": [10.2, 10]})

        result = tool.execute(vertical_step)

        assert not result.success
        assert "too short" in result.message

    def test_roi_defines_search_segment(self, vertical_step):
        tool = CaliperTool()
        tool.use_roi = True
        tool.roi = ROI(x=20, y=20, width=60, height=10)

        start, end, width = tool.search_segment(vertical_step)

        assert start == (20.0, 25.0)
        assert end == (80.0, 25.0)
        assert width == 10
        assert tool.execute(vertical_step).data["EdgeX"] == pytest.approx(49.5, abs=1.0)

    def test_custom_scorer_instance(self, tool, vertical_step):
        scorer = EdgeScorer(contrast_weight=0.0, position_weight=1.0)
        tool.scorer = scorer

        assert tool.build_scorer() is scorer
        assert tool.clone().scorer is scorer
        assert tool.execute(vertical_step).success

    def test_overlay_drawn_from_graphics(self, tool, vertical_step):
        result = tool.execute(vertical_step)

        types = [g.type for g in result.graphics]
        assert types == [GraphicType.RECTANGLE, GraphicType.LINE, GraphicType.CROSSHAIR]
        changed = (result.overlay_image != cv2.cvtColor(vertical_step, cv2.COLOR_GRAY2BGR)).any(axis=2)
        assert changed[30, 20]
        # vertical arm of the edge crosshair, below the search strip
        assert changed[33:36, 45:55].any()
        assert not changed[5:20].any()


class TestCaliperScoring:
    @pytest.fixture
    def two_edges(self):
        """Strong rising edge at x = 20, weak falling edge at x = 70"""
        image = np.zeros((60, 100), dtype=np.uint8)
        image[:, 20:70] = 200
        image[:, 70:] = 120
        return image

    @pytest.fixture
    def tool(self):
        tool = CaliperTool()
        tool.set_parameters({"start_point": [0, 30], "end_point": [99, 30], "search_width": 5})
        return tool

    def test_contrast_picks_strong_edge(self, tool, two_edges):
        result = tool.execute(two_edges)

        assert result.data["EdgeCount"] == 2
        assert result.data["EdgeX"] == pytest.approx(19.5, abs=1.0)

    def test_position_weight_picks_weak_edge(self, tool, two_edges):
        tool.set_parameters({"contrast_weight": 0, "position_weight": 1, "expected_position": 70})

        result = tool.execute(two_edges)

        assert result.success
        assert result.data["EdgeX"] == pytest.approx(69.5, abs=1.0)
        assert result.data["EdgePolarity"] == EdgePolarity.LIGHT_TO_DARK.value

    def test_weights_apply_without_custom_mode(self, tool, two_edges):
        tool.params.contrast_weight = 0.0
        tool.params.position_weight = 1.0
        tool.params.expected_position = 70

        assert tool.params.scorer_mode == ScorerMode.MAX_CONTRAST
        assert tool.execute(two_edges).data["EdgeX"] == pytest.approx(69.5, abs=1.0)

    def test_preset_assignment_writes_weights(self, tool):
        tool.params.scorer_mode = ScorerMode.CLOSEST

        p = tool.params
        assert (p.contrast_weight, p.position_weight, p.polarity_weight) == SCORER_PRESETS[ScorerMode.CLOSEST]

    def test_preset_from_set_parameters(self, tool, two_edges):
        tool.set_parameters({"scorer_mode": "closest", "expected_position": 70})

        assert tool.params.contrast_weight == 0.0
        assert tool.params.position_weight == 1.0
        assert tool.execute(two_edges).data["EdgeX"] == pytest.approx(69.5, abs=1.0)

    def test_explicit_weights_override_preset(self, tool):
        tool.set_parameters({"scorer_mode": "best_overall", "polarity_weight": 0.25})

        p = tool.params
        assert (p.contrast_weight, p.position_weight, p.polarity_weight) == (1.0, 1.0, 0.25)

    def test_custom_mode_keeps_weights(self, tool):
        tool.set_parameters({"contrast_weight": 0.3, "position_weight": 0.7})
        tool.params.scorer_mode = ScorerMode.CUSTOM

        assert tool.params.contrast_weight == pytest.approx(0.3)
        assert tool.params.position_weight == pytest.approx(0.7)

    def test_negative_weight_clamped(self, tool):
        tool.set_parameters({"contrast_weight": -1, "search_width": 0})

        assert tool.params.contrast_weight == 0
        assert tool.params.search_width == 1
