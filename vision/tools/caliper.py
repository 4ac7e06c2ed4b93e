"""
Caliper tool: 1-D edge measurement along a search segment.
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
from pydantic import Field, field_validator, model_validator

from core.constants import Colors, ToolDefaults
from core.enums import CaliperMode, EdgePolarity, GraphicType, ScorerMode, ToolType
from core.image.converters import ensure_grayscale
from core.utils.enum_converter import parse_enum
from schemas import GraphicOverlay, Point, VisionResult
from vision.measurement.edge_scoring import (
    EdgeCandidate,
    EdgePair,
    SCORER_PRESETS,
    EdgeScorer,
    compute_gradient,
    find_pairs,
    sample_profile,
    select_edges,
)

from .base import ToolParams, VisionTool

logger = logging.getLogger(__name__)


WEIGHT_FIELDS = ("contrast_weight", "position_weight", "polarity_weight")


def with_preset_weights(values: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Copy of ``values`` in which a preset ``scorer_mode`` supplies every
    scoring weight that is not given explicitly.
    """
    values = dict(values)
    mode = parse_enum(values.get("scorer_mode"), ScorerMode, default=None, normalize=True)
    if mode is not None and mode != ScorerMode.CUSTOM:
        for key, weight in zip(WEIGHT_FIELDS, SCORER_PRESETS[mode]):
            values.setdefault(key, weight)
    return values


class CaliperParams(ToolParams):
    """Caliper parameters"""

    start_point: Point = Field(default_factory=lambda: Point(x=0, y=0))
    end_point: Point = Field(default_factory=lambda: Point(x=100, y=0))
    search_width: int = Field(default=ToolDefaults.CALIPER_SEARCH_WIDTH, ge=1, description="Strip width (px)")
    polarity: EdgePolarity = Field(default=EdgePolarity.ANY)
    edge_threshold: float = Field(default=ToolDefaults.CALIPER_EDGE_THRESHOLD, ge=1)
    filter_half_width: int = Field(default=ToolDefaults.CALIPER_FILTER_HALF_WIDTH, ge=1)

    # === Edge pair mode ===
    mode: CaliperMode = Field(default=CaliperMode.SINGLE_EDGE)
    expected_width: float = Field(default=ToolDefaults.CALIPER_EXPECTED_WIDTH, ge=1)
    width_tolerance: float = Field(default=ToolDefaults.CALIPER_WIDTH_TOLERANCE, ge=0)

    # === Scoring ===
    max_edges: int = Field(default=ToolDefaults.CALIPER_MAX_EDGES, ge=1)
    expected_position: float = Field(default=-1.0, description="Expected edge offset; negative = segment middle")
    scorer_mode: ScorerMode = Field(default=ScorerMode.MAX_CONTRAST)
    contrast_weight: float = Field(default=1.0, ge=0)
    position_weight: float = Field(default=0.0, ge=0)
    polarity_weight: float = Field(default=0.0, ge=0)
    position_sigma: float = Field(default=ToolDefaults.CALIPER_POSITION_SIGMA, ge=1)

    @field_validator("start_point", "end_point", mode="before")
    @classmethod
    def parse_point(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return Point.from_any(v)
        return v

    @model_validator(mode="before")
    @classmethod
    def fill_preset_weights(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return with_preset_weights(data)
        return data

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        # Selecting a preset writes its weights; the weights drive scoring
        if name == "scorer_mode" and self.scorer_mode != ScorerMode.CUSTOM:
            for key, weight in zip(WEIGHT_FIELDS, SCORER_PRESETS[self.scorer_mode]):
                super().__setattr__(key, weight)


class CaliperTool(VisionTool):
    """
    Find edges along a segment.

    The scorer is built from the parameters on each run unless ``scorer`` is
    set, in which case that instance is used as-is.

    Attributes:
        scorer: Optional replacement ``EdgeScorer``
        last_profile: Intensity profile of the last run
        last_gradient: Gradient of the last run
        last_edges: Scored edges of the last run, best first
    """

    tool_type = ToolType.CALIPER
    default_name = "Caliper"
    params_class = CaliperParams

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.scorer: Optional[EdgeScorer] = None
        self.last_profile = np.zeros(0, dtype=np.float64)
        self.last_gradient = np.zeros(0, dtype=np.float64)
        self.last_edges: List[EdgeCandidate] = []

    def _copy_state_to(self, twin: "CaliperTool") -> None:
        twin.scorer = self.scorer

    def build_scorer(self) -> EdgeScorer:
        if self.scorer is not None:
            return self.scorer
        p: CaliperParams = self.params
        return EdgeScorer(p.contrast_weight, p.position_weight, p.polarity_weight, p.position_sigma)

    def set_parameters(self, values: Mapping[str, Any]) -> List[str]:
        return super().set_parameters(with_preset_weights(values))

    def search_segment(self, image: np.ndarray) -> Tuple[Tuple[float, float], Tuple[float, float], int]:
        """
        (start, end, width) of the search strip.

        With ROI scoping the segment runs through the ROI center along its
        longer side and the strip spans the shorter side.
        """
        p: CaliperParams = self.params
        roi = self._active_roi(image)
        if roi is None:
            return p.start_point.to_tuple(), p.end_point.to_tuple(), p.search_width

        cx, cy = roi.center
        if roi.width >= roi.height:
            return (float(roi.x), cy), (float(roi.x2), cy), roi.height
        return (cx, float(roi.y)), (cx, float(roi.y2)), roi.width

    def _run(self, image: np.ndarray) -> VisionResult:
        p: CaliperParams = self.params
        self.last_edges = []

        start, end, width = self.search_segment(image)
        length = math.hypot(end[0] - start[0], end[1] - start[1])
        if length < 1:
            return VisionResult.failure(f"Search line too short ({length:.2f} px)")

        gray = ensure_grayscale(image)
        self.last_profile = sample_profile(gray, start, end, width)
        self.last_gradient = compute_gradient(self.last_profile, p.filter_half_width)

        expected = p.expected_position if p.expected_position >= 0 else length / 2.0
        edges = select_edges(
            self.last_gradient, p.edge_threshold, p.polarity, self.build_scorer(), expected, p.max_edges
        )

        ux, uy = (end[0] - start[0]) / length, (end[1] - start[1]) / length
        for edge in edges:
            edge.x = start[0] + ux * edge.position
            edge.y = start[1] + uy * edge.position
        self.last_edges = edges

        data: Dict[str, Any] = {"EdgeCount": len(edges)}
        if edges:
            best = edges[0]
            data.update(
                {
                    "EdgeX": best.x,
                    "EdgeY": best.y,
                    "EdgeScore": best.score,
                    "EdgePolarity": best.polarity.value,
                }
            )

        pairs: List[EdgePair] = []
        if p.mode == CaliperMode.EDGE_PAIR:
            pairs = find_pairs(edges, p.expected_width, p.width_tolerance)
            data["PairCount"] = len(pairs)
            if pairs:
                pair = pairs[0]
                center_x, center_y = pair.center
                data.update(
                    {
                        "Width": pair.width,
                        "Edge1X": pair.first.x,
                        "Edge1Y": pair.first.y,
                        "Edge2X": pair.second.x,
                        "Edge2Y": pair.second.y,
                        "CenterX": center_x,
                        "CenterY": center_y,
                        "PairScore": pair.score,
                    }
                )
            success = len(pairs) > 0
            message = f"Width {pairs[0].width:.2f} px" if pairs else "No edge pair within tolerance"
        else:
            success = len(edges) > 0
            message = f"Found {len(edges)} edge(s)" if edges else "No edge found"

        graphics = self._graphics(start, end, width, edges, pairs)
        return VisionResult(
            success=success,
            message=message,
            output_image=image,
            overlay_image=self.renderer.render_graphics(self._overlay_base(image), graphics),
            graphics=graphics,
            data=data,
        )

    @staticmethod
    def _graphics(start, end, width, edges, pairs) -> List[GraphicOverlay]:
        length = math.hypot(end[0] - start[0], end[1] - start[1])
        center = ((start[0] + end[0]) / 2.0, (start[1] + end[1]) / 2.0)
        angle = math.degrees(math.atan2(end[1] - start[1], end[0] - start[0]))
        graphics = [
            GraphicOverlay(
                type=GraphicType.RECTANGLE,
                position=Point(x=center[0] - length / 2.0, y=center[1] - width / 2.0),
                width=length,
                height=width,
                angle=angle,
                color=Colors.SEARCH_REGION,
                thickness=1,
            ),
            GraphicOverlay(
                type=GraphicType.LINE,
                position=Point.from_any(start),
                end_position=Point.from_any(end),
                color=Colors.SEARCH_REGION,
                thickness=1,
            ),
        ]
        for i, edge in enumerate(edges):
            graphics.append(
                GraphicOverlay(
                    type=GraphicType.CROSSHAIR,
                    position=Point(x=edge.x, y=edge.y),
                    color=Colors.GREEN if i == 0 else Colors.ORANGE,
                )
            )
        if pairs:
            pair = pairs[0]
            graphics.append(
                GraphicOverlay(
                    type=GraphicType.LINE,
                    position=Point(x=pair.first.x, y=pair.first.y),
                    end_position=Point(x=pair.second.x, y=pair.second.y),
                    color=Colors.GREEN,
                    text=f"{pair.width:.2f}",
                )
            )
        return graphics
