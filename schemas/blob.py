"""
Blob analysis records.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np


@dataclass
class BlobRecord:
    """Measurements of one contour, in absolute frame coordinates"""

    id: int
    contour: np.ndarray  # (N, 1, 2) int32, absolute coordinates
    area: float
    perimeter: float
    center_x: float
    center_y: float
    bounding_rect: Tuple[int, int, int, int]  # x, y, w, h
    circularity: float = 0.0
    aspect_ratio: float = 0.0
    convexity: float = 1.0
    solidity: float = 1.0
    extent: float = 0.0
    equivalent_diameter: float = 0.0
    angle: float = 0.0
    min_area_rect: Optional[Tuple[Tuple[float, float], Tuple[float, float], float]] = None
    fit_ellipse: Optional[Tuple[Tuple[float, float], Tuple[float, float], float]] = None
    hull_area: float = field(default=0.0, repr=False)

    @property
    def center(self) -> Tuple[float, float]:
        return (self.center_x, self.center_y)

    def to_dict(self) -> dict:
        x, y, w, h = self.bounding_rect
        return {
            "id": self.id,
            "area": self.area,
            "perimeter": self.perimeter,
            "center_x": self.center_x,
            "center_y": self.center_y,
            "circularity": self.circularity,
            "aspect_ratio": self.aspect_ratio,
            "convexity": self.convexity,
            "solidity": self.solidity,
            "extent": self.extent,
            "equivalent_diameter": self.equivalent_diameter,
            "angle": self.angle,
            "bounding_rect": {"x": x, "y": y, "width": w, "height": h},
        }
