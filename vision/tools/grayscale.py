"""
Grayscale conversion tool.
"""

from typing import Any, Dict, Tuple

import numpy as np

from core.enums import ToolType
from core.image.converters import channel_count, ensure_grayscale

from .base import ImageProcessingTool


class GrayscaleTool(ImageProcessingTool):
    """Convert BGR/BGRA input to a single channel; gray input is copied."""

    tool_type = ToolType.GRAYSCALE
    default_name = "Grayscale"

    def _process(self, region: np.ndarray) -> Tuple[np.ndarray, Dict[str, Any]]:
        gray = ensure_grayscale(region)
        return gray, {}

    def _run(self, image: np.ndarray):
        result = super()._run(image)
        height, width = result.output_image.shape[:2]
        result.data.update(
            {"Channels": channel_count(result.output_image), "Width": width, "Height": height}
        )
        return result
