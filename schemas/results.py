"""
Result models produced by every tool execution.
"""

from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from core.enums import GraphicType

from .common import Point


class GraphicOverlay(BaseModel):
    """
    Descriptive drawing primitive attached to a result.

    Purely for display; no tool reads another tool's graphics.
    """

    type: GraphicType
    points: List[Point] = Field(default_factory=list, description="Polygon / polyline points")
    position: Optional[Point] = Field(default=None, description="Anchor (center, start or text origin)")
    end_position: Optional[Point] = Field(default=None, description="Line end point")
    width: float = Field(default=0.0, ge=0)
    height: float = Field(default=0.0, ge=0)
    radius: float = Field(default=0.0, ge=0)
    angle: float = Field(default=0.0, description="Rotation in degrees")
    color: Tuple[int, int, int] = Field(default=(0, 255, 0), description="BGR color")
    thickness: int = Field(default=2, ge=1)
    text: Optional[str] = None


class VisionResult(BaseModel):
    """
    Outcome of one ``VisionTool.execute`` call.

    On failure only ``success`` and ``message`` are meaningful.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool = False
    message: str = ""
    output_image: Optional[np.ndarray] = Field(default=None, exclude=True)
    overlay_image: Optional[np.ndarray] = Field(default=None, exclude=True)
    graphics: List[GraphicOverlay] = Field(default_factory=list)
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def failure(cls, message: str) -> "VisionResult":
        return cls(success=False, message=message)

    def has_output(self) -> bool:
        return self.output_image is not None and self.output_image.size > 0
