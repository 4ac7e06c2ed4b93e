"""
Height slicing on depth maps.
"""

import cv2
import numpy as np
from pydantic import Field, ValidationInfo, field_validator

from core.constants import ErrorMessages
from core.enums import ToolType
from core.image.converters import channel_count
from core.roi_handler import ROIHandler
from schemas import VisionResult

from .base import VisionTool, ToolParams

# Slices narrower than this are not rescaled
_MIN_RANGE = 1e-4


class HeightSlicerParams(ToolParams):
    min_z: float = Field(default=0.0, description="Lower bound of the height band")
    max_z: float = Field(default=1000.0, description="Upper bound of the height band (>= min_z)")

    @field_validator("max_z")
    @classmethod
    def max_not_below_min(cls, v: float, info: ValidationInfo) -> float:
        min_z = info.data.get("min_z")
        if min_z is not None and v < min_z:
            return min_z
        return v


class HeightSlicerTool(VisionTool):
    """
    Keep the pixels of a Z-map that lie within [min_z, max_z].

    Input must be a single-channel float32 depth map. Pixels inside the band
    are scaled to 0-255, everything else becomes 0.
    """

    tool_type = ToolType.HEIGHT_SLICER
    default_name = "Height Slicer"
    params_class = HeightSlicerParams
    requires_depth_map = True

    def _run(self, image: np.ndarray) -> VisionResult:
        if channel_count(image) != 1 or image.dtype != np.float32:
            return VisionResult.failure(
                ErrorMessages.DEPTH_MAP_REQUIRED.format(channels=channel_count(image), dtype=image.dtype)
            )

        p: HeightSlicerParams = self.params
        region, _ = self._work_region(image)

        mask = cv2.inRange(region, p.min_z, p.max_z)
        z_range = p.max_z - p.min_z
        scale = 255.0 / z_range if z_range > _MIN_RANGE else 1.0
        shift = -p.min_z * scale

        scaled = cv2.convertScaleAbs(region, alpha=scale, beta=shift)
        sliced = np.zeros_like(scaled)
        cv2.copyTo(scaled, mask, sliced)

        background = np.zeros(image.shape[:2], dtype=np.uint8)
        roi = self._active_roi(image)
        output = sliced if roi is None else ROIHandler.composite_result(background, sliced, roi)

        valid = int(cv2.countNonZero(mask))
        return VisionResult(
            success=True,
            message=f"Height slice [{p.min_z:.2f}, {p.max_z:.2f}]: {valid} valid pixels",
            output_image=output,
            data={
                "MinZ": p.min_z,
                "MaxZ": p.max_z,
                "ValidPixelCount": valid,
                "ValidPixelRatio": valid / float(mask.size),
            },
        )
