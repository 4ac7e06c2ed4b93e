"""
Histogram analysis and contrast enhancement.
"""

from typing import Any, Dict, Tuple

import cv2
import numpy as np
from pydantic import Field

from core.constants import Colors, ToolDefaults
from core.enums import HistogramOperation, ToolType
from core.image.converters import ensure_grayscale
from schemas import VisionResult

from .base import ImageProcessingTool, ToolParams


class HistogramParams(ToolParams):
    operation: HistogramOperation = Field(default=HistogramOperation.ANALYZE)
    clip_limit: float = Field(default=2.0, ge=0.01, description="CLAHE contrast limit")
    tile_grid_width: int = Field(default=8, ge=1)
    tile_grid_height: int = Field(default=8, ge=1)


class HistogramTool(ImageProcessingTool):
    """
    Gray-level histogram tool.

    ``analyze`` leaves the image untouched and reports statistics with a
    rendered plot as overlay; ``equalize`` and ``clahe`` enhance contrast.
    """

    tool_type = ToolType.HISTOGRAM
    default_name = "Histogram"
    params_class = HistogramParams

    def _run(self, image: np.ndarray) -> VisionResult:
        if self.params.operation != HistogramOperation.ANALYZE:
            return super()._run(image)

        region, _ = self._work_region(image)
        gray = ensure_grayscale(region)
        hist = cv2.calcHist([gray], [0], None, [256], [0, 256])
        mean, std = cv2.meanStdDev(gray)
        min_val, max_val, _, _ = cv2.minMaxLoc(gray)

        return VisionResult(
            success=True,
            message="Histogram analysis completed",
            output_image=image.copy(),
            overlay_image=self.render_plot(hist),
            data={
                "Operation": HistogramOperation.ANALYZE.value,
                "MinValue": float(min_val),
                "MaxValue": float(max_val),
                "MeanValue": float(mean[0][0]),
                "StdDev": float(std[0][0]),
            },
        )

    def _process(self, region: np.ndarray) -> Tuple[np.ndarray, Dict[str, Any]]:
        p: HistogramParams = self.params
        gray = ensure_grayscale(region)

        if p.operation == HistogramOperation.EQUALIZE:
            output = cv2.equalizeHist(gray)
            method = "EqualizeHist"
        else:
            clahe = cv2.createCLAHE(clipLimit=p.clip_limit, tileGridSize=(p.tile_grid_width, p.tile_grid_height))
            output = clahe.apply(gray)
            method = "CLAHE"

        return output, {"Operation": p.operation.value, "Method": method}

    def _message(self, data: Dict[str, Any]) -> str:
        return f"Histogram {self.params.operation.value} completed"

    @staticmethod
    def render_plot(
        hist: np.ndarray,
        width: int = ToolDefaults.HISTOGRAM_PLOT_WIDTH,
        height: int = ToolDefaults.HISTOGRAM_PLOT_HEIGHT,
    ) -> np.ndarray:
        """Draw a 256-bin histogram as a polyline on a black canvas."""
        plot = np.zeros((height, width, 3), dtype=np.uint8)
        normalized = cv2.normalize(hist, None, 0, height, cv2.NORM_MINMAX).flatten()
        bin_width = width / float(len(normalized))

        points = np.array(
            [[int(round(i * bin_width)), height - int(round(v))] for i, v in enumerate(normalized)],
            dtype=np.int32,
        )
        cv2.polylines(plot, [points.reshape(-1, 1, 2)], False, Colors.WHITE, 1, cv2.LINE_AA)
        return plot
