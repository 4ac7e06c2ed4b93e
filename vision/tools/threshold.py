"""
Binarization tool (fixed, Otsu or adaptive threshold).
"""

from typing import Any, Dict, Tuple

import cv2
import numpy as np
from pydantic import Field, field_validator

from core.constants import ToolDefaults
from core.enums import AdaptiveMethod, ThresholdType, ToolType
from core.image.converters import ensure_grayscale

from .base import ImageProcessingTool, ToolParams

_CV_THRESHOLD_TYPES = {
    ThresholdType.BINARY: cv2.THRESH_BINARY,
    ThresholdType.BINARY_INV: cv2.THRESH_BINARY_INV,
    ThresholdType.TRUNC: cv2.THRESH_TRUNC,
    ThresholdType.TO_ZERO: cv2.THRESH_TOZERO,
    ThresholdType.TO_ZERO_INV: cv2.THRESH_TOZERO_INV,
}

_CV_ADAPTIVE_METHODS = {
    AdaptiveMethod.MEAN: cv2.ADAPTIVE_THRESH_MEAN_C,
    AdaptiveMethod.GAUSSIAN: cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
}


class ThresholdParams(ToolParams):
    """Threshold parameters"""

    threshold_value: float = Field(default=ToolDefaults.THRESHOLD_VALUE, description="Fixed threshold (0-255)")
    max_value: float = Field(default=ToolDefaults.MAX_PIXEL_VALUE, description="Value for pixels passing (0-255)")
    threshold_type: ThresholdType = Field(default=ThresholdType.BINARY)
    use_otsu: bool = Field(default=False, description="Compute the threshold with Otsu's method")
    use_adaptive: bool = Field(default=False, description="Local adaptive threshold (takes precedence)")
    adaptive_method: AdaptiveMethod = Field(default=AdaptiveMethod.GAUSSIAN)
    block_size: int = Field(default=11, description="Adaptive neighbourhood size (odd, >= 3)")
    c_value: float = Field(default=2.0, description="Constant subtracted from the local mean")

    @field_validator("threshold_value", "max_value")
    @classmethod
    def clamp_pixel_range(cls, v: float) -> float:
        return float(min(255.0, max(0.0, v)))

    @field_validator("block_size")
    @classmethod
    def make_odd(cls, v: int) -> int:
        v = max(3, int(v))
        return v if v % 2 == 1 else v + 1


class ThresholdTool(ImageProcessingTool):
    """Binarize the ROI."""

    tool_type = ToolType.THRESHOLD
    default_name = "Threshold"
    params_class = ThresholdParams

    def _process(self, region: np.ndarray) -> Tuple[np.ndarray, Dict[str, Any]]:
        p: ThresholdParams = self.params
        gray = ensure_grayscale(region)
        calculated = p.threshold_value

        if p.use_adaptive:
            kind = cv2.THRESH_BINARY_INV if p.threshold_type == ThresholdType.BINARY_INV else cv2.THRESH_BINARY
            output = cv2.adaptiveThreshold(
                gray, p.max_value, _CV_ADAPTIVE_METHODS[p.adaptive_method], kind, p.block_size, p.c_value
            )
            method = "Adaptive"
        elif p.use_otsu:
            calculated, output = cv2.threshold(
                gray, 0, p.max_value, _CV_THRESHOLD_TYPES[p.threshold_type] | cv2.THRESH_OTSU
            )
            method = "Otsu"
        else:
            _, output = cv2.threshold(gray, p.threshold_value, p.max_value, _CV_THRESHOLD_TYPES[p.threshold_type])
            method = "Fixed"

        white_pixels = int(cv2.countNonZero(output))
        return output, {
            "Method": method,
            "CalculatedThreshold": float(calculated),
            "ThresholdType": p.threshold_type.value,
            "WhitePixelCount": white_pixels,
            "WhitePixelRatio": white_pixels / float(output.size),
        }

    def _message(self, data: Dict[str, Any]) -> str:
        return f"Threshold completed (value: {data['CalculatedThreshold']:.1f})"
