"""
Line fitting from an array of calipers.
"""

import logging
import math
from typing import Any, List, Optional, Tuple

import numpy as np
from pydantic import Field, field_validator

from core.constants import Colors, ToolDefaults
from core.enums import EdgePolarity, FitMethod, GraphicType, ToolType
from core.image.converters import ensure_grayscale
from schemas import GraphicOverlay, Point, VisionResult
from vision.measurement.edge_scoring import caliper_edge_point
from vision.measurement.fitting import LineModel, fit_line_least_squares, fit_line_ransac

from .base import ToolParams, VisionTool

logger = logging.getLogger(__name__)


class LineFitParams(ToolParams):
    start_point: Point = Field(default_factory=lambda: Point(x=0, y=100))
    end_point: Point = Field(default_factory=lambda: Point(x=200, y=100))
    num_calipers: int = Field(default=10, ge=2)
    search_length: float = Field(default=50.0, ge=10, description="Caliper length across the line")
    search_width: int = Field(default=5, ge=1, description="Caliper strip width")
    polarity: EdgePolarity = Field(default=EdgePolarity.ANY)
    edge_threshold: float = Field(default=ToolDefaults.CALIPER_EDGE_THRESHOLD, ge=1)
    fit_method: FitMethod = Field(default=FitMethod.LEAST_SQUARES)
    ransac_threshold: float = Field(default=5.0, ge=0.1, description="Inlier distance (px)")
    min_found_calipers: int = Field(default=3, ge=2)

    @field_validator("start_point", "end_point", mode="before")
    @classmethod
    def parse_point(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return Point.from_any(v)
        return v


class LineFitTool(VisionTool):
    """
    Fit a straight edge.

    Calipers are spread evenly along the nominal segment, each searching
    perpendicular to it; the strongest edge of every caliper feeds the fit.
    """

    tool_type = ToolType.LINE_FIT
    default_name = "Line Fit"
    params_class = LineFitParams

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.last_points: List[Tuple[float, float]] = []

    def caliper_centers(self) -> Tuple[List[Tuple[float, float]], Tuple[float, float]]:
        """Caliper centers and the (unit) search direction."""
        p: LineFitParams = self.params
        (sx, sy), (ex, ey) = p.start_point.to_tuple(), p.end_point.to_tuple()
        length = math.hypot(ex - sx, ey - sy)
        if length < 1:
            return [], (0.0, 0.0)

        ux, uy = (ex - sx) / length, (ey - sy) / length
        n = p.num_calipers
        centers = [(sx + (ex - sx) * i / (n - 1), sy + (ey - sy) * i / (n - 1)) for i in range(n)]
        return centers, (-uy, ux)

    def _run(self, image: np.ndarray) -> VisionResult:
        p: LineFitParams = self.params
        self.last_points = []

        centers, direction = self.caliper_centers()
        if not centers:
            return VisionResult.failure("Nominal line is too short")

        gray = ensure_grayscale(image)
        for center in centers:
            point = caliper_edge_point(
                gray, center, direction, p.search_length, p.search_width, p.edge_threshold, p.polarity
            )
            if point is not None:
                self.last_points.append(point)

        found = len(self.last_points)
        if found < p.min_found_calipers:
            return VisionResult(
                success=False,
                message=f"Only {found} of {len(centers)} calipers found an edge (need {p.min_found_calipers})",
                overlay_image=self._draw(image, centers, direction, None),
                data={"FoundCount": found, "TotalCalipers": len(centers)},
            )

        if p.fit_method == FitMethod.RANSAC:
            model = fit_line_ransac(self.last_points, p.ransac_threshold)
        else:
            model = fit_line_least_squares(self.last_points)
        if model is None:
            return VisionResult.failure("Line fit failed")

        start = model.project(*p.start_point.to_tuple())
        end = model.project(*p.end_point.to_tuple())
        logger.debug(f"Line fit '{self.name}': angle {model.angle:.2f}, rms {model.rms_error:.3f}")

        return VisionResult(
            success=True,
            message=f"Line angle {model.angle:.2f} deg",
            output_image=image,
            overlay_image=self._draw(image, centers, direction, (start, end)),
            graphics=[
                GraphicOverlay(
                    type=GraphicType.LINE,
                    position=Point.from_any(start),
                    end_position=Point.from_any(end),
                )
            ]
            + [GraphicOverlay(type=GraphicType.POINT, position=Point.from_any(pt), thickness=2) for pt in self.last_points],
            data={
                "LineAngle": model.angle,
                "LinePointX": model.point[0],
                "LinePointY": model.point[1],
                "DirectionX": model.direction[0],
                "DirectionY": model.direction[1],
                "StartX": start[0],
                "StartY": start[1],
                "EndX": end[0],
                "EndY": end[1],
                "FitError": model.rms_error,
                "InlierCount": model.inliers,
                "FoundCount": found,
                "TotalCalipers": len(centers),
            },
        )

    def _draw(self, image, centers, direction, line: Optional[Tuple]) -> np.ndarray:
        p: LineFitParams = self.params
        overlay = self._overlay_base(image)
        angle = math.degrees(math.atan2(direction[1], direction[0]))

        for center in centers:
            self.renderer.draw_rotated_rect(
                overlay, center, (p.search_length, p.search_width), angle, Colors.SEARCH_REGION, 1
            )
        for x, y in self.last_points:
            self.renderer.draw_center_point(overlay, x, y, Colors.ORANGE, radius=2)
        if line is not None:
            self.renderer.draw_line(overlay, line[0], line[1], Colors.GREEN)
        return overlay
