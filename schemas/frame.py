"""
Frame acquisition contract.
"""

from typing import Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


class FrameData(BaseModel):
    """
    One captured frame as handed to the pipeline.

    ``point_cloud`` is an optional single-channel float32 Z-map consumed by
    depth-aware tools.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool = True
    message: str = ""
    image: Optional[np.ndarray] = Field(default=None, exclude=True)
    point_cloud: Optional[np.ndarray] = Field(default=None, exclude=True)

    @classmethod
    def from_image(cls, image: np.ndarray, point_cloud: Optional[np.ndarray] = None) -> "FrameData":
        return cls(success=True, image=image, point_cloud=point_cloud)

    @property
    def has_image(self) -> bool:
        return self.image is not None and self.image.size > 0
