"""
Circle fitting from radial calipers.
"""

import logging
import math
from typing import Any, List, Optional, Tuple

import numpy as np
from pydantic import Field, ValidationInfo, field_validator

from core.constants import Colors, ToolDefaults
from core.enums import EdgePolarity, FitMethod, GraphicType, ToolType
from core.image.converters import ensure_grayscale
from schemas import GraphicOverlay, Point, VisionResult
from vision.measurement.edge_scoring import caliper_edge_point
from vision.measurement.fitting import CircleModel, fit_circle_least_squares, fit_circle_ransac

from .base import ToolParams, VisionTool

logger = logging.getLogger(__name__)


class CircleFitParams(ToolParams):
    center_point: Point = Field(default_factory=lambda: Point(x=200, y=200))
    expected_radius: float = Field(default=100.0, ge=10)
    num_calipers: int = Field(default=16, ge=3)
    search_length: float = Field(default=50.0, ge=10, description="Radial caliper length")
    search_width: int = Field(default=5, ge=1)
    polarity: EdgePolarity = Field(default=EdgePolarity.ANY)
    edge_threshold: float = Field(default=ToolDefaults.CALIPER_EDGE_THRESHOLD, ge=1)
    start_angle: float = Field(default=0.0, description="Arc start (degrees)")
    end_angle: float = Field(default=360.0, description="Arc end (degrees, >= start_angle)")
    fit_method: FitMethod = Field(default=FitMethod.LEAST_SQUARES)
    ransac_threshold: float = Field(default=5.0, ge=0.1)
    min_found_calipers: int = Field(default=3, ge=3)

    @field_validator("center_point", mode="before")
    @classmethod
    def parse_point(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return Point.from_any(v)
        return v

    @field_validator("end_angle")
    @classmethod
    def end_not_before_start(cls, v: float, info: ValidationInfo) -> float:
        start = info.data.get("start_angle")
        if start is not None and v < start:
            return start
        return v


class CircleFitTool(VisionTool):
    """
    Fit a circle to edges found by radial calipers.

    Calipers point outward from ``center_point`` and are centered on the
    expected radius. Polarity is read in that outward direction.
    """

    tool_type = ToolType.CIRCLE_FIT
    default_name = "Circle Fit"
    params_class = CircleFitParams

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.last_points: List[Tuple[float, float]] = []

    def caliper_angles(self) -> List[float]:
        """Caliper angles in radians, evenly spread over the arc."""
        p: CircleFitParams = self.params
        extent = p.end_angle - p.start_angle
        n = p.num_calipers
        # a full circle would put the last caliper on top of the first
        step = extent / n if extent >= 360.0 else extent / max(1, n - 1)
        return [math.radians(p.start_angle + i * step) for i in range(n)]

    def _run(self, image: np.ndarray) -> VisionResult:
        p: CircleFitParams = self.params
        self.last_points = []

        gray = ensure_grayscale(image)
        cx, cy = p.center_point.to_tuple()
        angles = self.caliper_angles()

        for theta in angles:
            direction = (math.cos(theta), math.sin(theta))
            center = (cx + direction[0] * p.expected_radius, cy + direction[1] * p.expected_radius)
            point = caliper_edge_point(
                gray, center, direction, p.search_length, p.search_width, p.edge_threshold, p.polarity
            )
            if point is not None:
                self.last_points.append(point)

        found = len(self.last_points)
        if found < p.min_found_calipers:
            return VisionResult(
                success=False,
                message=f"Only {found} of {len(angles)} calipers found an edge (need {p.min_found_calipers})",
                overlay_image=self._draw(image, angles, None),
                data={"FoundCount": found, "TotalCalipers": len(angles)},
            )

        if p.fit_method == FitMethod.RANSAC:
            model = fit_circle_ransac(self.last_points, p.ransac_threshold)
        else:
            model = fit_circle_least_squares(self.last_points)
        if model is None:
            return VisionResult.failure("Circle fit failed (collinear edge points)")

        logger.debug(f"Circle fit '{self.name}': r={model.radius:.2f}, rms {model.rms_error:.3f}")
        return VisionResult(
            success=True,
            message=f"Circle radius {model.radius:.2f} px",
            output_image=image,
            overlay_image=self._draw(image, angles, model),
            graphics=[
                GraphicOverlay(type=GraphicType.CIRCLE, position=Point.from_any(model.center), radius=model.radius),
                GraphicOverlay(type=GraphicType.CROSSHAIR, position=Point.from_any(model.center)),
            ],
            data={
                "CenterX": model.center[0],
                "CenterY": model.center[1],
                "Radius": model.radius,
                "Diameter": 2.0 * model.radius,
                "FitError": model.rms_error,
                "InlierCount": model.inliers,
                "FoundCount": found,
                "TotalCalipers": len(angles),
            },
        )

    def _draw(self, image: np.ndarray, angles: List[float], model: Optional[CircleModel]) -> np.ndarray:
        p: CircleFitParams = self.params
        overlay = self._overlay_base(image)
        cx, cy = p.center_point.to_tuple()

        for theta in angles:
            center = (cx + math.cos(theta) * p.expected_radius, cy + math.sin(theta) * p.expected_radius)
            self.renderer.draw_rotated_rect(
                overlay, center, (p.search_length, p.search_width), math.degrees(theta), Colors.SEARCH_REGION, 1
            )
        for x, y in self.last_points:
            self.renderer.draw_center_point(overlay, x, y, Colors.ORANGE, radius=2)
        if model is not None:
            center = (int(round(model.center[0])), int(round(model.center[1])))
            self.renderer.draw_circle(overlay, center, model.radius, Colors.GREEN)
            self.renderer.draw_cross_marker(overlay, model.center[0], model.center[1], Colors.RED)
        return overlay
