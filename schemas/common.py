"""
Common geometry models shared by tools, results and configuration.
"""

from typing import Any, Dict, Tuple

from pydantic import BaseModel, Field


class Point(BaseModel):
    """2D point in image coordinates (x right, y down)"""

    x: float = Field(default=0.0, description="X coordinate")
    y: float = Field(default=0.0, description="Y coordinate")

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @classmethod
    def from_any(cls, value: Any) -> "Point":
        """Build a point from a Point, dict or (x, y) sequence."""
        if isinstance(value, Point):
            return value.model_copy()
        if isinstance(value, dict):
            return cls(x=float(value.get("x", 0)), y=float(value.get("y", 0)))
        x, y = value
        return cls(x=float(x), y=float(y))


class ROI(BaseModel):
    """
    Region of Interest.

    Configured rectangles may carry a negative width/height (drawn from the
    bottom-right corner); ``normalized()`` turns them into a positive extent.
    Bounds checking against an image is done by ``ROIHandler.adjust_roi``.
    """

    x: int = Field(default=0, description="X coordinate")
    y: int = Field(default=0, description="Y coordinate")
    width: int = Field(default=0, description="Width")
    height: int = Field(default=0, description="Height")

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary for service layer compatibility."""
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ROI":
        """Create ROI from dictionary."""
        return cls(
            x=int(data.get("x", 0)),
            y=int(data.get("y", 0)),
            width=int(data.get("width", 0)),
            height=int(data.get("height", 0)),
        )

    @classmethod
    def from_points(cls, x1: int, y1: int, x2: int, y2: int) -> "ROI":
        """Create ROI from two corner points."""
        return cls(x=min(x1, x2), y=min(y1, y2), width=abs(x2 - x1), height=abs(y2 - y1))

    @property
    def x2(self) -> int:
        """Get right edge coordinate."""
        return self.x + self.width

    @property
    def y2(self) -> int:
        """Get bottom edge coordinate."""
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        """Get center point of ROI as (x, y) tuple."""
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def normalized(self) -> "ROI":
        """Return an equivalent ROI with non-negative width and height."""
        return ROI.from_points(self.x, self.y, self.x2, self.y2)

    def clip(self, image_width: int, image_height: int) -> "ROI":
        """
        Clip ROI to image bounds.

        Args:
            image_width: Maximum width (image width)
            image_height: Maximum height (image height)

        Returns:
            Clipped ROI that fits within image bounds
        """
        x = max(0, min(self.x, image_width))
        y = max(0, min(self.y, image_height))
        x2 = max(0, min(self.x2, image_width))
        y2 = max(0, min(self.y2, image_height))

        return ROI.from_points(x, y, x2, y2)
