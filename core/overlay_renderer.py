"""
Overlay rendering utilities for tool results.

Provides consistent visualization of tool results: ROI frames, contours,
markers, measurement lines, and generic ``GraphicOverlay`` primitives.
"""

from typing import Iterable, Optional, Sequence, Tuple

import cv2
import numpy as np

from core.constants import Colors, DrawingConstants
from core.enums import GraphicType
from core.image.converters import ensure_bgr, to_display_8u
from schemas import ROI, GraphicOverlay


class OverlayRenderer:
    """
    Renders tool results as overlays on images.

    All drawing methods work in place on a BGR image and return it for
    chaining.
    """

    # Default colors (BGR format)
    COLOR_SUCCESS = Colors.SUCCESS
    COLOR_FAILURE = Colors.ERROR
    COLOR_INFO = Colors.CYAN

    def __init__(
        self,
        font=cv2.FONT_HERSHEY_SIMPLEX,
        font_scale: float = DrawingConstants.SMALL_FONT_SCALE,
        thickness: int = DrawingConstants.DEFAULT_LINE_THICKNESS,
        line_type=cv2.LINE_AA,
    ):
        """
        Initialize overlay renderer.

        Args:
            font: OpenCV font type
            font_scale: Font scale factor
            thickness: Line thickness for rectangles and text
            line_type: Line type for anti-aliasing
        """
        self.font = font
        self.font_scale = font_scale
        self.thickness = thickness
        self.line_type = line_type

    @staticmethod
    def overlay_base(image: np.ndarray) -> np.ndarray:
        """Get a BGR copy of ``image`` suitable for drawing."""
        if image.dtype != np.uint8:
            image = to_display_8u(image)
        return ensure_bgr(image)

    def draw_bounding_box(
        self,
        image: np.ndarray,
        x: int,
        y: int,
        width: int,
        height: int,
        color: Tuple[int, int, int] = COLOR_SUCCESS,
        thickness: Optional[int] = None,
    ) -> np.ndarray:
        """
        Draw a bounding box on the image.

        Args:
            image: Input image
            x: Top-left x coordinate
            y: Top-left y coordinate
            width: Box width
            height: Box height
            color: Box color in BGR format
            thickness: Line thickness (None = use default)

        Returns:
            Image with bounding box drawn
        """
        thickness = thickness or self.thickness
        cv2.rectangle(image, (int(x), int(y)), (int(x + width), int(y + height)), color, thickness, self.line_type)
        return image

    def draw_roi(self, image: np.ndarray, roi: ROI, color: Tuple[int, int, int] = Colors.ROI) -> np.ndarray:
        """Draw an ROI frame."""
        return self.draw_bounding_box(image, roi.x, roi.y, roi.width, roi.height, color)

    def draw_label(
        self,
        image: np.ndarray,
        text: str,
        x: int,
        y: int,
        color: Tuple[int, int, int] = COLOR_SUCCESS,
        background: bool = False,
    ) -> np.ndarray:
        """
        Draw text label on the image.

        Args:
            image: Input image
            text: Text to draw
            x: Text x coordinate
            y: Text y coordinate
            color: Text color in BGR format
            background: Whether to draw background rectangle

        Returns:
            Image with label drawn
        """
        x, y = int(x), int(y)
        if background:
            (text_width, text_height), baseline = cv2.getTextSize(
                text, self.font, self.font_scale, self.thickness
            )
            cv2.rectangle(image, (x, y - text_height - baseline), (x + text_width, y), color, -1)
            text_color = Colors.WHITE
        else:
            text_color = color

        cv2.putText(image, text, (x, y), self.font, self.font_scale, text_color, self.thickness, self.line_type)
        return image

    def draw_center_point(
        self,
        image: np.ndarray,
        center_x: float,
        center_y: float,
        color: Tuple[int, int, int] = COLOR_SUCCESS,
        radius: int = 3,
    ) -> np.ndarray:
        """Draw a filled center point marker."""
        cv2.circle(image, (int(center_x), int(center_y)), radius, color, -1, self.line_type)
        return image

    def draw_cross_marker(
        self,
        image: np.ndarray,
        center_x: float,
        center_y: float,
        color: Tuple[int, int, int] = Colors.RED,
        size: int = DrawingConstants.LARGE_MARKER_SIZE,
        thickness: Optional[int] = None,
    ) -> np.ndarray:
        """Draw a '+' marker centered on a point."""
        thickness = thickness or self.thickness
        cv2.drawMarker(
            image,
            (int(round(center_x)), int(round(center_y))),
            color,
            cv2.MARKER_CROSS,
            size,
            thickness,
            self.line_type,
        )
        return image

    def draw_contour(
        self,
        image: np.ndarray,
        contour: np.ndarray,
        color: Tuple[int, int, int] = COLOR_INFO,
        thickness: Optional[int] = None,
    ) -> np.ndarray:
        """
        Draw a contour on the image.

        Args:
            image: Input image
            contour: Contour points (OpenCV format)
            color: Contour color in BGR format
            thickness: Line thickness (None = use default)

        Returns:
            Image with contour drawn
        """
        thickness = thickness or self.thickness
        cv2.drawContours(image, [contour.astype(np.int32)], -1, color, thickness, self.line_type)
        return image

    def draw_line(
        self,
        image: np.ndarray,
        start: Tuple[float, float],
        end: Tuple[float, float],
        color: Tuple[int, int, int] = COLOR_INFO,
        thickness: Optional[int] = None,
    ) -> np.ndarray:
        thickness = thickness or self.thickness
        cv2.line(
            image,
            (int(round(start[0])), int(round(start[1]))),
            (int(round(end[0])), int(round(end[1]))),
            color,
            thickness,
            self.line_type,
        )
        return image

    def draw_circle(
        self,
        image: np.ndarray,
        center: Tuple[float, float],
        radius: float,
        color: Tuple[int, int, int] = COLOR_SUCCESS,
        thickness: Optional[int] = None,
    ) -> np.ndarray:
        thickness = thickness or self.thickness
        cv2.circle(
            image, (int(round(center[0])), int(round(center[1]))), int(round(radius)), color, thickness, self.line_type
        )
        return image

    def draw_rotated_rect(
        self,
        image: np.ndarray,
        center: Tuple[float, float],
        size: Tuple[float, float],
        angle: float,
        color: Tuple[int, int, int] = COLOR_INFO,
        thickness: Optional[int] = None,
    ) -> np.ndarray:
        """Draw a rotated rectangle ((cx, cy), (w, h), angle in degrees)."""
        thickness = thickness or self.thickness
        box = cv2.boxPoints((center, size, angle)).astype(np.int32)
        cv2.polylines(image, [box], True, color, thickness, self.line_type)
        return image

    def draw_polyline(
        self,
        image: np.ndarray,
        points: Sequence[Tuple[float, float]],
        color: Tuple[int, int, int] = COLOR_INFO,
        closed: bool = True,
        thickness: Optional[int] = None,
    ) -> np.ndarray:
        if len(points) == 0:
            return image
        thickness = thickness or self.thickness
        pts = np.round(np.asarray(points, dtype=np.float64)).astype(np.int32).reshape(-1, 1, 2)
        cv2.polylines(image, [pts], closed, color, thickness, self.line_type)
        return image

    def render_graphics(self, image: np.ndarray, graphics: Iterable[GraphicOverlay]) -> np.ndarray:
        """
        Draw descriptive graphics primitives onto a copy of ``image``.

        Args:
            image: Base image (any channel count)
            graphics: Graphics to draw

        Returns:
            New BGR image with the graphics drawn
        """
        result = self.overlay_base(image)
        for g in graphics:
            color = tuple(int(c) for c in g.color)
            pos = g.position.to_tuple() if g.position is not None else None

            if g.type == GraphicType.POINT and pos is not None:
                self.draw_center_point(result, pos[0], pos[1], color, radius=max(1, g.thickness))
            elif g.type == GraphicType.CROSSHAIR and pos is not None:
                self.draw_cross_marker(result, pos[0], pos[1], color, thickness=g.thickness)
            elif g.type == GraphicType.LINE and pos is not None and g.end_position is not None:
                self.draw_line(result, pos, g.end_position.to_tuple(), color, g.thickness)
            elif g.type == GraphicType.RECTANGLE and pos is not None:
                if g.angle:
                    center = (pos[0] + g.width / 2.0, pos[1] + g.height / 2.0)
                    self.draw_rotated_rect(result, center, (g.width, g.height), g.angle, color, g.thickness)
                else:
                    self.draw_bounding_box(result, pos[0], pos[1], g.width, g.height, color, g.thickness)
            elif g.type == GraphicType.CIRCLE and pos is not None:
                self.draw_circle(result, pos, g.radius, color, g.thickness)
            elif g.type == GraphicType.ELLIPSE and pos is not None:
                axes = (int(round(g.width / 2.0)), int(round(g.height / 2.0)))
                cv2.ellipse(result, (int(round(pos[0])), int(round(pos[1]))), axes, g.angle, 0, 360, color, g.thickness, self.line_type)
            elif g.type == GraphicType.POLYGON:
                self.draw_polyline(result, [p.to_tuple() for p in g.points], color, True, g.thickness)
            elif g.type == GraphicType.TEXT and pos is not None and g.text:
                self.draw_label(result, g.text, pos[0], pos[1], color)
        return result

    @staticmethod
    def merge_overlay_graphics(overlay: np.ndarray, base: np.ndarray, composite: np.ndarray) -> None:
        """
        Copy only the drawn pixels of ``overlay`` into ``composite``.

        Drawn pixels are those where ``overlay`` differs from ``base`` (the
        frame it was drawn on). ``composite`` is modified in place; sizes must
        match, otherwise nothing happens.
        """
        overlay_bgr = OverlayRenderer.overlay_base(overlay)
        base_bgr = OverlayRenderer.overlay_base(base)
        if overlay_bgr.shape != composite.shape or base_bgr.shape != overlay_bgr.shape:
            return

        diff = cv2.cvtColor(cv2.absdiff(overlay_bgr, base_bgr), cv2.COLOR_BGR2GRAY)
        mask = diff > 1
        composite[mask] = overlay_bgr[mask]
