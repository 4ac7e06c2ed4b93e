"""
Smoothing filters (average, Gaussian, median, bilateral).
"""

from typing import Any, Dict, Tuple

import cv2
import numpy as np
from pydantic import Field, field_validator

from core.constants import ToolDefaults
from core.enums import BlurType, ToolType

from .base import ImageProcessingTool, ToolParams


class BlurParams(ToolParams):
    """Blur filter parameters"""

    blur_type: BlurType = Field(default=BlurType.GAUSSIAN, description="Filter kind")
    kernel_size: int = Field(
        default=ToolDefaults.KERNEL_SIZE,
        description="Kernel size (forced odd, >= 1); bilateral diameter",
    )
    sigma_x: float = Field(default=0.0, ge=0, description="Gaussian sigma X (0 = from kernel)")
    sigma_y: float = Field(default=0.0, ge=0, description="Gaussian sigma Y (0 = sigma_x)")
    sigma_color: float = Field(default=75.0, ge=0, description="Bilateral sigma in color space")
    sigma_space: float = Field(default=75.0, ge=0, description="Bilateral sigma in coordinate space")

    @field_validator("kernel_size")
    @classmethod
    def make_odd(cls, v: int) -> int:
        v = max(1, int(v))
        return v if v % 2 == 1 else v + 1


class BlurTool(ImageProcessingTool):
    """Blur the ROI with the selected filter."""

    tool_type = ToolType.BLUR
    default_name = "Blur"
    params_class = BlurParams

    def _process(self, region: np.ndarray) -> Tuple[np.ndarray, Dict[str, Any]]:
        p: BlurParams = self.params
        k = p.kernel_size

        if p.blur_type == BlurType.AVERAGE:
            output = cv2.blur(region, (k, k))
        elif p.blur_type == BlurType.MEDIAN:
            output = cv2.medianBlur(region, k)
        elif p.blur_type == BlurType.BILATERAL:
            output = cv2.bilateralFilter(region, k, p.sigma_color, p.sigma_space)
        else:
            output = cv2.GaussianBlur(region, (k, k), p.sigma_x, sigmaY=p.sigma_y)

        return output, {"BlurType": p.blur_type.value, "KernelSize": k}

    def _message(self, data: Dict[str, Any]) -> str:
        return f"{self.params.blur_type.value} blur completed (kernel: {self.params.kernel_size})"
