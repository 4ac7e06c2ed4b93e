"""
Shape-based pattern matching on gradient orientation.

A model is a sparse set of edge points (offsets from the template center)
with unit gradient directions. The match score at a pose is the mean
agreement between the model directions and the image gradient directions
under the model points:

- polarity sensitive: mean of ``cos(delta)``
- contrast invariant: mean of ``cos(delta)^2``, so a light-on-dark part
  matches its dark-on-light version

Sums over model points are evaluated for every position at once by
correlating sparse direction templates with direction maps
(``cv2.matchTemplate`` with ``TM_CCORR``).
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import cv2
import numpy as np

from core.constants import ToolDefaults
from core.exceptions import ToolConfigurationError
from core.image.converters import from_base64, to_base64
from core.utils.decorators import log_timing

logger = logging.getLogger(__name__)

# Candidates kept from the coarse pyramid level
_MAX_COARSE_CANDIDATES = 10


@dataclass
class FeatureMatchModel:
    """A trained pattern."""

    name: str
    template: np.ndarray
    trained_center: Tuple[float, float]
    points: np.ndarray  # (N, 2) float64 offsets from the template center
    directions: np.ndarray  # (N, 2) float64 unit gradient directions
    enabled: bool = True

    @property
    def point_count(self) -> int:
        return len(self.points)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form; the template travels as a base64 PNG."""
        return {
            "name": self.name,
            "enabled": self.enabled,
            "trained_center_x": self.trained_center[0],
            "trained_center_y": self.trained_center[1],
            "template": to_base64(self.template, format="PNG"),
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        canny_low: float,
        canny_high: float,
        max_points: int,
    ) -> "FeatureMatchModel":
        """Rebuild a model (edge points are re-extracted from the template)."""
        template = from_base64(data["template"])
        if template.ndim == 3:
            template = cv2.cvtColor(template, cv2.COLOR_BGR2GRAY)
        model = train_model(
            template,
            name=data.get("name", "Model"),
            trained_center=(float(data.get("trained_center_x", 0.0)), float(data.get("trained_center_y", 0.0))),
            canny_low=canny_low,
            canny_high=canny_high,
            max_points=max_points,
        )
        model.enabled = bool(data.get("enabled", True))
        return model


@dataclass
class MatchResult:
    model: FeatureMatchModel
    x: float
    y: float
    angle: float
    scale: float
    score: float


@dataclass
class SearchSettings:
    angle_start: float = -45.0
    angle_extent: float = 90.0
    angle_step: float = 1.0
    min_scale: float = 1.0
    max_scale: float = 1.0
    scale_step: float = 0.05
    num_levels: int = 3
    greediness: float = 0.8
    contrast_invariant: bool = False
    min_magnitude: float = 50.0


def _gradients(gray: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3)
    return gx, gy, cv2.magnitude(gx, gy)


@log_timing
def train_model(
    template: np.ndarray,
    name: str,
    trained_center: Tuple[float, float],
    canny_low: float,
    canny_high: float,
    max_points: int,
) -> FeatureMatchModel:
    """
    Extract edge points and gradient directions from a template.

    Raises:
        ToolConfigurationError: Too few edge points for a usable model
    """
    gx, gy, magnitude = _gradients(template)
    edges = cv2.Canny(template, canny_low, canny_high)
    ys, xs = np.nonzero((edges > 0) & (magnitude > 1e-6))

    if len(xs) < ToolDefaults.FEATURE_MIN_MODEL_POINTS:
        raise ToolConfigurationError(
            f"Pattern has only {len(xs)} edge points (need {ToolDefaults.FEATURE_MIN_MODEL_POINTS})"
        )

    if len(xs) > max_points:
        keep = np.linspace(0, len(xs) - 1, max_points).round().astype(int)
        xs, ys = xs[keep], ys[keep]

    mag = magnitude[ys, xs].astype(np.float64)
    directions = np.column_stack([gx[ys, xs] / mag, gy[ys, xs] / mag])

    h, w = template.shape[:2]
    points = np.column_stack([xs - w / 2.0, ys - h / 2.0]).astype(np.float64)
    logger.debug(f"Trained model '{name}' with {len(points)} edge points")

    return FeatureMatchModel(
        name=name,
        template=template.copy(),
        trained_center=trained_center,
        points=points,
        directions=directions,
    )


class _DirectionMaps:
    """Per-image maps the sparse templates are correlated with."""

    def __init__(self, gray: np.ndarray, min_magnitude: float, contrast_invariant: bool):
        gx, gy, magnitude = _gradients(gray)
        strong = magnitude >= max(min_magnitude, 1e-6)
        safe = np.where(strong, magnitude, 1.0)
        dx = np.where(strong, gx / safe, 0.0).astype(np.float32)
        dy = np.where(strong, gy / safe, 0.0).astype(np.float32)

        self.contrast_invariant = contrast_invariant
        self.shape = gray.shape[:2]
        if contrast_invariant:
            self.maps = [strong.astype(np.float32), dx * dx - dy * dy, 2.0 * dx * dy]
        else:
            self.maps = [dx, dy]

    def score_map(self, pose: "_Pose", window: Optional[Tuple[int, int, int, int]] = None) -> Optional[np.ndarray]:
        """
        Scores of every template position (top-left) inside ``window``.

        Args:
            pose: Transformed model
            window: (x0, y0, x1, y1) of the search area in map coordinates

        Returns:
            Score map, or None when the template does not fit
        """
        h, w = self.shape
        x0, y0, x1, y1 = window if window is not None else (0, 0, w, h)
        x0, y0 = max(0, x0), max(0, y0)
        x1, y1 = min(w, x1), min(h, y1)
        th, tw = pose.templates[0].shape
        if x1 - x0 < tw or y1 - y0 < th:
            return None

        total = None
        for image_map, template in zip(self.maps, pose.templates):
            part = cv2.matchTemplate(image_map[y0:y1, x0:x1], template, cv2.TM_CCORR)
            total = part if total is None else total + part

        n = float(pose.count)
        if self.contrast_invariant:
            return total / (2.0 * n)
        return total / n


class _Pose:
    """Model rotated and scaled into sparse direction templates."""

    def __init__(self, model: FeatureMatchModel, angle: float, scale: float, level_scale: float, contrast_invariant: bool):
        self.angle = angle
        self.scale = scale

        rad = math.radians(angle)
        c, s = math.cos(rad), math.sin(rad)
        px, py = model.points[:, 0], model.points[:, 1]
        k = scale / level_scale
        rx = np.floor((px * c - py * s) * k + 0.5).astype(int)
        ry = np.floor((px * s + py * c) * k + 0.5).astype(int)

        dx = model.directions[:, 0] * c - model.directions[:, 1] * s
        dy = model.directions[:, 0] * s + model.directions[:, 1] * c

        self.min_x, self.min_y = int(rx.min()), int(ry.min())
        tw = int(rx.max()) - self.min_x + 1
        th = int(ry.max()) - self.min_y + 1
        cols, rows = rx - self.min_x, ry - self.min_y

        if contrast_invariant:
            layers = [np.ones_like(dx), dx * dx - dy * dy, 2.0 * dx * dy]
        else:
            layers = [dx, dy]

        self.templates = []
        for values in layers:
            template = np.zeros((th, tw), dtype=np.float32)
            template[rows, cols] = values
            self.templates.append(template)

        # colliding points collapse onto one template pixel
        self.count = max(1, len(set(zip(rows.tolist(), cols.tolist()))))

    def center_of(self, left: int, top: int) -> Tuple[float, float]:
        return (left - self.min_x, top - self.min_y)


def _frange(start: float, stop: float, step: float) -> List[float]:
    if step <= 0 or stop <= start:
        return [start]
    count = int(math.floor((stop - start) / step + 1e-9)) + 1
    return [start + i * step for i in range(count)]


def find_best_match(
    search: np.ndarray,
    models: List[FeatureMatchModel],
    settings: SearchSettings,
) -> Optional[MatchResult]:
    """
    Best pose of any model in ``search`` (coordinates relative to ``search``).

    A coarse scan on the top pyramid level proposes candidates whose score is
    at least ``greediness`` times the best coarse score; each is refined at
    full resolution around its position and angle.
    """
    angles = _frange(settings.angle_start, settings.angle_start + settings.angle_extent, settings.angle_step)
    scales = _frange(settings.min_scale, settings.max_scale, settings.scale_step)
    levels = max(1, min(settings.num_levels, ToolDefaults.FEATURE_MAX_LEVELS))

    pyramid = [search]
    for _ in range(levels - 1):
        if min(pyramid[-1].shape[:2]) < 16:
            break
        pyramid.append(cv2.pyrDown(pyramid[-1]))
    top = len(pyramid) - 1
    level_scale = float(2**top)

    full_maps = _DirectionMaps(search, settings.min_magnitude, settings.contrast_invariant)
    best: Optional[MatchResult] = None

    if top == 0:
        for model in models:
            for scale in scales:
                for angle in angles:
                    best = _better(best, _scan(full_maps, model, angle, scale, 1.0, None, settings))
        return best

    coarse_maps = _DirectionMaps(pyramid[top], settings.min_magnitude, settings.contrast_invariant)
    coarse_step = min(settings.angle_extent, settings.angle_step * level_scale) if settings.angle_extent > 0 else 0.0
    coarse_angles = _frange(settings.angle_start, settings.angle_start + settings.angle_extent, coarse_step)

    candidates: List[MatchResult] = []
    for model in models:
        for scale in scales:
            for angle in coarse_angles:
                found = _scan(coarse_maps, model, angle, scale, level_scale, None, settings)
                if found is not None:
                    candidates.append(found)

    if not candidates:
        return None

    best_coarse = max(c.score for c in candidates)
    candidates = [c for c in candidates if c.score >= settings.greediness * best_coarse]
    candidates.sort(key=lambda c: c.score, reverse=True)

    radius = int(level_scale) + 2
    for cand in candidates[:_MAX_COARSE_CANDIDATES]:
        fine_angles = [
            a
            for a in _frange(cand.angle - coarse_step, cand.angle + coarse_step, settings.angle_step)
            if settings.angle_start - 1e-9 <= a <= settings.angle_start + settings.angle_extent + 1e-9
        ] or [cand.angle]
        center = (cand.x * level_scale, cand.y * level_scale)
        for angle in fine_angles:
            best = _better(best, _scan(full_maps, cand.model, angle, cand.scale, 1.0, (center, radius), settings))

    return best


def _better(current: Optional[MatchResult], candidate: Optional[MatchResult]) -> Optional[MatchResult]:
    if candidate is None:
        return current
    if current is None or candidate.score > current.score:
        return candidate
    return current


def _scan(
    maps: _DirectionMaps,
    model: FeatureMatchModel,
    angle: float,
    scale: float,
    level_scale: float,
    around: Optional[Tuple[Tuple[float, float], int]],
    settings: SearchSettings,
) -> Optional[MatchResult]:
    """Best position of one pose, optionally only near ``around=(center, radius)``."""
    pose = _Pose(model, angle, scale, level_scale, settings.contrast_invariant)
    window = None
    if around is not None:
        (cx, cy), radius = around
        th, tw = pose.templates[0].shape
        left = int(round(cx)) + pose.min_x - radius
        top = int(round(cy)) + pose.min_y - radius
        window = (left, top, left + tw + 2 * radius, top + th + 2 * radius)

    scores = maps.score_map(pose, window)
    if scores is None:
        return None

    _, max_val, _, max_loc = cv2.minMaxLoc(scores)
    x0 = max(0, window[0]) if window is not None else 0
    y0 = max(0, window[1]) if window is not None else 0
    cx, cy = pose.center_of(max_loc[0] + x0, max_loc[1] + y0)
    return MatchResult(model=model, x=float(cx), y=float(cy), angle=angle, scale=scale, score=float(max_val))
