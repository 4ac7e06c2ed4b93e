"""
Morphological operations tool.
"""

from typing import Any, Dict, Tuple

import cv2
import numpy as np
from pydantic import Field

from core.enums import KernelShape, MorphOperation, ToolType

from .base import ImageProcessingTool, ToolParams

_CV_SHAPES = {
    KernelShape.RECT: cv2.MORPH_RECT,
    KernelShape.ELLIPSE: cv2.MORPH_ELLIPSE,
    KernelShape.CROSS: cv2.MORPH_CROSS,
}

_CV_OPERATIONS = {
    MorphOperation.OPEN: cv2.MORPH_OPEN,
    MorphOperation.CLOSE: cv2.MORPH_CLOSE,
    MorphOperation.GRADIENT: cv2.MORPH_GRADIENT,
    MorphOperation.TOPHAT: cv2.MORPH_TOPHAT,
    MorphOperation.BLACKHAT: cv2.MORPH_BLACKHAT,
}


class MorphologyParams(ToolParams):
    operation: MorphOperation = Field(default=MorphOperation.DILATE)
    kernel_shape: KernelShape = Field(default=KernelShape.RECT)
    kernel_width: int = Field(default=3, ge=1, description="Structuring element width")
    kernel_height: int = Field(default=3, ge=1, description="Structuring element height")
    iterations: int = Field(default=1, ge=1)


class MorphologyTool(ImageProcessingTool):
    """Erode/dilate/open/close/... with a configurable structuring element."""

    tool_type = ToolType.MORPHOLOGY
    default_name = "Morphology"
    params_class = MorphologyParams

    def _process(self, region: np.ndarray) -> Tuple[np.ndarray, Dict[str, Any]]:
        p: MorphologyParams = self.params
        kernel = cv2.getStructuringElement(_CV_SHAPES[p.kernel_shape], (p.kernel_width, p.kernel_height))

        if p.operation == MorphOperation.ERODE:
            output = cv2.erode(region, kernel, iterations=p.iterations)
        elif p.operation == MorphOperation.DILATE:
            output = cv2.dilate(region, kernel, iterations=p.iterations)
        else:
            output = cv2.morphologyEx(region, _CV_OPERATIONS[p.operation], kernel, iterations=p.iterations)

        return output, {
            "Operation": p.operation.value,
            "KernelShape": p.kernel_shape.value,
            "KernelSize": f"{p.kernel_width}x{p.kernel_height}",
            "Iterations": p.iterations,
        }

    def _message(self, data: Dict[str, Any]) -> str:
        return f"Morphology {self.params.operation.value} completed"
