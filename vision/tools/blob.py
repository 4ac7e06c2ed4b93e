"""
Blob analysis for machine vision.

Binarizes the work region, extracts contours and measures each one.
Contours are moved into frame coordinates right after extraction, so
every measurement, filter and sort key works in absolute coordinates.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

import cv2
import numpy as np
from pydantic import Field, ValidationInfo, field_validator

from core.constants import Colors, ToolDefaults
from core.enums import ApproximationMode, BlobSortBy, GraphicType, RetrievalMode, ToolType
from core.image.converters import ensure_grayscale
from core.utils.coordinate_adjuster import CoordinateAdjuster
from schemas import BlobRecord, GraphicOverlay, Point, VisionResult

from .base import ToolParams, VisionTool

logger = logging.getLogger(__name__)

_CV_RETRIEVAL = {
    RetrievalMode.EXTERNAL: cv2.RETR_EXTERNAL,
    RetrievalMode.LIST: cv2.RETR_LIST,
    RetrievalMode.CCOMP: cv2.RETR_CCOMP,
    RetrievalMode.TREE: cv2.RETR_TREE,
}

_CV_APPROXIMATION = {
    ApproximationMode.NONE: cv2.CHAIN_APPROX_NONE,
    ApproximationMode.SIMPLE: cv2.CHAIN_APPROX_SIMPLE,
    ApproximationMode.TC89_L1: cv2.CHAIN_APPROX_TC89_L1,
    ApproximationMode.TC89_KCOS: cv2.CHAIN_APPROX_TC89_KCOS,
}

_SORT_KEYS = {
    BlobSortBy.AREA: lambda b: b.area,
    BlobSortBy.PERIMETER: lambda b: b.perimeter,
    BlobSortBy.CENTER_X: lambda b: b.center_x,
    BlobSortBy.CENTER_Y: lambda b: b.center_y,
    BlobSortBy.CIRCULARITY: lambda b: b.circularity,
    BlobSortBy.ASPECT_RATIO: lambda b: b.aspect_ratio,
}


def _filled_mask(points: np.ndarray, shape: Tuple[int, int]) -> np.ndarray:
    """0/1 mask of a filled polygon, outline included."""
    mask = np.zeros(shape, dtype=np.uint8)
    cv2.drawContours(mask, [points], -1, 1, cv2.FILLED)
    # zero-area contours (lines) only show up through their outline
    cv2.drawContours(mask, [points], -1, 1, 1)
    return mask


def _upper_bound(v: Optional[float], lower_field: str, info: ValidationInfo) -> Optional[float]:
    """Clamp an optional upper bound so it never drops below its lower bound."""
    if v is None:
        return None
    lower = info.data.get(lower_field)
    if lower is not None and v < lower:
        return lower
    return v


class BlobParams(ToolParams):
    """
    Blob detection parameters.

    Upper bounds set to None are unbounded.
    """

    # === Binarization ===
    use_internal_threshold: bool = Field(
        default=True, description="Threshold the input; otherwise treat it as already binary"
    )
    threshold_value: float = Field(default=ToolDefaults.THRESHOLD_VALUE, description="Threshold (0-255)")
    invert_polarity: bool = Field(default=False, description="Detect dark blobs on a light background")

    # === Filters ===
    min_area: float = Field(default=ToolDefaults.BLOB_MIN_AREA, ge=0)
    max_area: Optional[float] = Field(default=None, description="Maximum area (None = unbounded)")
    min_perimeter: float = Field(default=0.0, ge=0)
    max_perimeter: Optional[float] = Field(default=None)
    min_circularity: float = Field(default=0.0)
    max_circularity: float = Field(default=1.0)
    min_aspect_ratio: float = Field(default=0.0, ge=0)
    max_aspect_ratio: Optional[float] = Field(default=None)
    min_convexity: float = Field(default=0.0)

    # === Output ===
    max_blob_count: int = Field(default=ToolDefaults.BLOB_MAX_COUNT, ge=1)
    sort_by: BlobSortBy = Field(default=BlobSortBy.AREA)
    sort_descending: bool = Field(default=True)
    retrieval_mode: RetrievalMode = Field(default=RetrievalMode.EXTERNAL)
    approximation_mode: ApproximationMode = Field(default=ApproximationMode.SIMPLE)

    # === Drawing ===
    draw_contours: bool = True
    draw_bounding_box: bool = True
    draw_center_point: bool = True
    draw_labels: bool = True

    @field_validator("threshold_value")
    @classmethod
    def clamp_threshold(cls, v: float) -> float:
        return float(min(255.0, max(0.0, v)))

    @field_validator("min_circularity", "max_circularity", "min_convexity")
    @classmethod
    def clamp_unit_interval(cls, v: float) -> float:
        return float(min(1.0, max(0.0, v)))

    @field_validator("max_area")
    @classmethod
    def max_area_not_below_min(cls, v, info: ValidationInfo):
        return _upper_bound(v, "min_area", info)

    @field_validator("max_perimeter")
    @classmethod
    def max_perimeter_not_below_min(cls, v, info: ValidationInfo):
        return _upper_bound(v, "min_perimeter", info)

    @field_validator("max_circularity")
    @classmethod
    def max_circularity_not_below_min(cls, v, info: ValidationInfo):
        return _upper_bound(v, "min_circularity", info)

    @field_validator("max_aspect_ratio")
    @classmethod
    def max_aspect_not_below_min(cls, v, info: ValidationInfo):
        return _upper_bound(v, "min_aspect_ratio", info)


class BlobTool(VisionTool):
    """
    Connected-region analysis.

    ``last_blobs`` keeps the records that survived the last run (diagnostic
    cache, same threading caveat as ``last_result``).
    """

    tool_type = ToolType.BLOB
    default_name = "Blob Analysis"
    params_class = BlobParams

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.last_blobs: List[BlobRecord] = []

    def _run(self, image: np.ndarray) -> VisionResult:
        p: BlobParams = self.params
        self.last_blobs = []

        region, offset = self._work_region(image)
        binary = self.binarize(region)

        contours, _ = cv2.findContours(
            binary, _CV_RETRIEVAL[p.retrieval_mode], _CV_APPROXIMATION[p.approximation_mode]
        )
        absolute = CoordinateAdjuster.offset_contours(contours, offset)

        blobs = [self.measure(contour) for contour in absolute]
        blobs = [b for b in blobs if self.passes_filters(b)]
        blobs = sorted(blobs, key=_SORT_KEYS[p.sort_by], reverse=p.sort_descending)
        blobs = blobs[: p.max_blob_count]
        for i, blob in enumerate(blobs):
            blob.id = i

        self.last_blobs = blobs
        logger.debug(f"Blob tool '{self.name}': {len(contours)} contours, {len(blobs)} blobs kept")

        return VisionResult(
            success=len(blobs) > 0,
            message=f"Found {len(blobs)} blob(s)",
            output_image=self._composite(image, binary),
            overlay_image=self._draw(image, blobs),
            graphics=[self._polygon(b) for b in blobs],
            data=self._data(blobs),
        )

    def binarize(self, region: np.ndarray) -> np.ndarray:
        """Single-channel 0/255 mask of the foreground."""
        p: BlobParams = self.params
        gray = ensure_grayscale(region)
        if gray.dtype != np.uint8:
            gray = cv2.convertScaleAbs(gray)

        if p.use_internal_threshold:
            kind = cv2.THRESH_BINARY_INV if p.invert_polarity else cv2.THRESH_BINARY
            _, binary = cv2.threshold(gray, p.threshold_value, 255, kind)
            return binary

        binary = np.where(gray > 0, 255, 0).astype(np.uint8)
        return cv2.bitwise_not(binary) if p.invert_polarity else binary

    @staticmethod
    def measure(contour: np.ndarray) -> BlobRecord:
        """
        Compute the shape properties of one (absolute) contour.

        Area, centroid and hull area count the pixels of the filled region,
        so a blob's area matches the number of foreground pixels it covers.

        Args:
            contour: OpenCV contour in frame coordinates

        Returns:
            BlobRecord with id 0
        """
        perimeter = float(cv2.arcLength(contour, True))
        x, y, w, h = cv2.boundingRect(contour)
        origin = np.array([x, y], dtype=np.int32)

        mask = _filled_mask(contour - origin, (h, w))
        moments = cv2.moments(mask, binaryImage=True)
        area = float(moments["m00"])
        if area > 0:
            cx = x + moments["m10"] / area
            cy = y + moments["m01"] / area
        else:
            cx = x + w / 2.0
            cy = y + h / 2.0

        hull_area = float(cv2.countNonZero(_filled_mask(cv2.convexHull(contour) - origin, (h, w))))

        circularity = min(1.0, 4.0 * math.pi * area / (perimeter * perimeter)) if perimeter > 0 else 0.0
        aspect_ratio = w / float(h) if h > 0 else 0.0
        convexity = min(1.0, area / hull_area) if hull_area > 0 else 1.0

        record = BlobRecord(
            id=0,
            contour=contour,
            area=area,
            perimeter=perimeter,
            center_x=float(cx),
            center_y=float(cy),
            bounding_rect=(int(x), int(y), int(w), int(h)),
            circularity=circularity,
            aspect_ratio=aspect_ratio,
            convexity=convexity,
            solidity=convexity,
            extent=area / float(w * h) if w * h > 0 else 0.0,
            equivalent_diameter=math.sqrt(4.0 * area / math.pi),
            hull_area=hull_area,
        )

        if len(contour) >= ToolDefaults.MIN_POINTS_FOR_ELLIPSE:
            rect = cv2.minAreaRect(contour)
            record.min_area_rect = rect
            record.angle = float(rect[2])
            record.fit_ellipse = cv2.fitEllipse(contour)

        return record

    def passes_filters(self, blob: BlobRecord) -> bool:
        p: BlobParams = self.params
        if blob.area < p.min_area or (p.max_area is not None and blob.area > p.max_area):
            return False
        if not p.min_circularity <= blob.circularity <= p.max_circularity:
            return False
        if blob.convexity < p.min_convexity:
            return False
        if blob.perimeter < p.min_perimeter or (p.max_perimeter is not None and blob.perimeter > p.max_perimeter):
            return False
        if blob.aspect_ratio < p.min_aspect_ratio or (
            p.max_aspect_ratio is not None and blob.aspect_ratio > p.max_aspect_ratio
        ):
            return False
        return True

    def _draw(self, image: np.ndarray, blobs: List[BlobRecord]) -> np.ndarray:
        p: BlobParams = self.params
        overlay = self._overlay_base(image)

        for i, blob in enumerate(blobs):
            if p.draw_contours:
                color = Colors.PALETTE[i % len(Colors.PALETTE)]
                self.renderer.draw_contour(overlay, blob.contour, color)
            if p.draw_bounding_box:
                bx, by, bw, bh = blob.bounding_rect
                self.renderer.draw_bounding_box(overlay, bx, by, bw, bh, Colors.CYAN, thickness=1)
            if p.draw_center_point:
                self.renderer.draw_cross_marker(overlay, blob.center_x, blob.center_y, Colors.RED)
            if p.draw_labels:
                self.renderer.draw_label(overlay, f"#{i}", blob.center_x + 8, blob.center_y - 8, Colors.YELLOW)

        return overlay

    @staticmethod
    def _polygon(blob: BlobRecord) -> GraphicOverlay:
        points = [Point(x=float(pt[0][0]), y=float(pt[0][1])) for pt in blob.contour]
        return GraphicOverlay(
            type=GraphicType.POLYGON,
            points=points,
            position=Point(x=blob.center_x, y=blob.center_y),
        )

    @staticmethod
    def _data(blobs: List[BlobRecord]) -> Dict[str, Any]:
        data: Dict[str, Any] = {"BlobCount": len(blobs)}
        if not blobs:
            return data

        first = blobs[0]
        bx, by, bw, bh = first.bounding_rect
        data.update(
            {
                "Area": first.area,
                "CenterX": first.center_x,
                "CenterY": first.center_y,
                "Perimeter": first.perimeter,
                "Circularity": first.circularity,
                "BoundingRect": {"x": bx, "y": by, "width": bw, "height": bh},
            }
        )
        for i, blob in enumerate(blobs):
            data[f"Blob{i}_Area"] = blob.area
            data[f"Blob{i}_CenterX"] = blob.center_x
            data[f"Blob{i}_CenterY"] = blob.center_y
        return data
