"""
Edge detection tool for machine vision.
"""

from typing import Any, Dict, Tuple

import cv2
import numpy as np
from pydantic import Field, field_validator

from core.enums import EdgeMethod, ToolType
from core.image.converters import ensure_grayscale

from .base import ImageProcessingTool, ToolParams


def _odd(v: int, low: int, high: int) -> int:
    v = min(high, max(low, int(v)))
    return v if v % 2 == 1 else min(high, v + 1)


class EdgeDetectionParams(ToolParams):
    """
    Edge detection parameters.

    Canny produces a binary edge map; the gradient methods produce an 8-bit
    magnitude image.
    """

    method: EdgeMethod = Field(default=EdgeMethod.CANNY, description="Edge detection method")

    # === Canny edge detection parameters ===
    canny_threshold1: float = Field(default=50.0, ge=0, description="Canny low threshold")
    canny_threshold2: float = Field(default=150.0, ge=0, description="Canny high threshold")
    canny_aperture_size: int = Field(default=3, description="Canny aperture size (odd, 3-7)")
    l2_gradient: bool = Field(default=False, description="Use L2 gradient norm (more accurate but slower)")

    # === Sobel / Laplacian parameters ===
    sobel_kernel_size: int = Field(default=3, description="Sobel/Laplacian kernel size (odd, 1-31)")

    @field_validator("canny_aperture_size")
    @classmethod
    def validate_aperture(cls, v: int) -> int:
        return _odd(v, 3, 7)

    @field_validator("sobel_kernel_size")
    @classmethod
    def validate_sobel_kernel(cls, v: int) -> int:
        return _odd(v, 1, 31)


class EdgeDetectionTool(ImageProcessingTool):
    """Edge detection processor."""

    tool_type = ToolType.EDGE_DETECTION
    default_name = "Edge Detection"
    params_class = EdgeDetectionParams

    def _process(self, region: np.ndarray) -> Tuple[np.ndarray, Dict[str, Any]]:
        p: EdgeDetectionParams = self.params
        gray = ensure_grayscale(region)

        if p.method == EdgeMethod.CANNY:
            edges = self._detect_canny(gray)
        elif p.method == EdgeMethod.SOBEL:
            edges = self._detect_sobel(gray)
        elif p.method == EdgeMethod.SCHARR:
            edges = self._detect_scharr(gray)
        elif p.method == EdgeMethod.LAPLACIAN:
            edges = self._detect_laplacian(gray)
        else:
            raise ValueError(f"Unknown edge detection method: {p.method}")

        edge_pixels = int(cv2.countNonZero(edges))
        return edges, {
            "Method": p.method.value,
            "EdgePixelCount": edge_pixels,
            "EdgePixelRatio": edge_pixels / float(edges.size),
        }

    def _detect_canny(self, gray: np.ndarray) -> np.ndarray:
        """Apply Canny edge detection."""
        p = self.params
        return cv2.Canny(
            gray,
            p.canny_threshold1,
            p.canny_threshold2,
            apertureSize=p.canny_aperture_size,
            L2gradient=p.l2_gradient,
        )

    @staticmethod
    def _combine(grad_x: np.ndarray, grad_y: np.ndarray) -> np.ndarray:
        return cv2.addWeighted(cv2.convertScaleAbs(grad_x), 0.5, cv2.convertScaleAbs(grad_y), 0.5, 0)

    def _detect_sobel(self, gray: np.ndarray) -> np.ndarray:
        """Apply Sobel edge detection (x and y magnitudes blended 50/50)."""
        k = self.params.sobel_kernel_size
        grad_x = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=k)
        grad_y = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=k)
        return self._combine(grad_x, grad_y)

    def _detect_scharr(self, gray: np.ndarray) -> np.ndarray:
        """Apply Scharr edge detection."""
        grad_x = cv2.Scharr(gray, cv2.CV_64F, 1, 0)
        grad_y = cv2.Scharr(gray, cv2.CV_64F, 0, 1)
        return self._combine(grad_x, grad_y)

    def _detect_laplacian(self, gray: np.ndarray) -> np.ndarray:
        """Apply Laplacian edge detection."""
        laplacian = cv2.Laplacian(gray, cv2.CV_64F, ksize=self.params.sobel_kernel_size)
        return cv2.convertScaleAbs(laplacian)

    def _message(self, data: Dict[str, Any]) -> str:
        return f"{self.params.method.value} edge detection completed"
