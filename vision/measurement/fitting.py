"""
Geometric fitting of line and circle models to edge points.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from core.constants import ToolDefaults

logger = logging.getLogger(__name__)


@dataclass
class LineModel:
    """Infinite line through ``point`` along unit ``direction``"""

    point: Tuple[float, float]
    direction: Tuple[float, float]
    rms_error: float = 0.0
    inliers: int = 0

    @property
    def angle(self) -> float:
        """Orientation in degrees."""
        return math.degrees(math.atan2(self.direction[1], self.direction[0]))

    def distances(self, points: np.ndarray) -> np.ndarray:
        dx, dy = self.direction
        rel = points - np.asarray(self.point)
        return np.abs(rel[:, 0] * dy - rel[:, 1] * dx)

    def project(self, x: float, y: float) -> Tuple[float, float]:
        """Closest point on the line to (x, y)."""
        dx, dy = self.direction
        px, py = self.point
        t = (x - px) * dx + (y - py) * dy
        return (px + t * dx, py + t * dy)


@dataclass
class CircleModel:
    center: Tuple[float, float]
    radius: float
    rms_error: float = 0.0
    inliers: int = 0

    def distances(self, points: np.ndarray) -> np.ndarray:
        return np.abs(np.hypot(points[:, 0] - self.center[0], points[:, 1] - self.center[1]) - self.radius)


def _as_points(points: Sequence[Tuple[float, float]]) -> np.ndarray:
    return np.asarray(points, dtype=np.float64).reshape(-1, 2)


# ----------------------------------------------------------------------
# Lines
# ----------------------------------------------------------------------


def fit_line_least_squares(points: Sequence[Tuple[float, float]]) -> Optional[LineModel]:
    """Total least squares line (``cv2.fitLine`` with DIST_L2)."""
    pts = _as_points(points)
    if len(pts) < 2:
        return None

    vx, vy, x0, y0 = cv2.fitLine(pts.astype(np.float32), cv2.DIST_L2, 0, 0.01, 0.01).flatten()
    model = LineModel(point=(float(x0), float(y0)), direction=(float(vx), float(vy)))
    residuals = model.distances(pts)
    model.rms_error = float(np.sqrt(np.mean(residuals**2)))
    model.inliers = len(pts)
    return model


def fit_line_ransac(
    points: Sequence[Tuple[float, float]],
    threshold: float,
    iterations: int = ToolDefaults.RANSAC_ITERATIONS,
    seed: int = ToolDefaults.RANSAC_SEED,
) -> Optional[LineModel]:
    """
    RANSAC line fit.

    Two-point hypotheses; the largest consensus set is refit with least
    squares. ``inliers`` counts the points within ``threshold`` of the
    final line.
    """
    pts = _as_points(points)
    if len(pts) < 2:
        return None

    rng = np.random.default_rng(seed)
    best_mask: Optional[np.ndarray] = None
    best_count = 0

    for _ in range(iterations):
        i, j = rng.choice(len(pts), size=2, replace=False)
        delta = pts[j] - pts[i]
        norm = math.hypot(delta[0], delta[1])
        if norm < 1e-9:
            continue
        candidate = LineModel(point=tuple(pts[i]), direction=(delta[0] / norm, delta[1] / norm))
        mask = candidate.distances(pts) <= threshold
        count = int(mask.sum())
        if count > best_count:
            best_count, best_mask = count, mask

    if best_mask is None or best_count < 2:
        logger.debug("RANSAC line fit found no consensus, falling back to least squares")
        return fit_line_least_squares(pts)

    model = fit_line_least_squares(pts[best_mask])
    model.inliers = int((model.distances(pts) <= threshold).sum())
    return model


# ----------------------------------------------------------------------
# Circles
# ----------------------------------------------------------------------


def fit_circle_least_squares(points: Sequence[Tuple[float, float]]) -> Optional[CircleModel]:
    """
    Algebraic (Kasa) circle fit.

    Solves ``x² + y² + D·x + E·y + F = 0`` in the least squares sense.
    """
    pts = _as_points(points)
    if len(pts) < 3:
        return None

    x, y = pts[:, 0], pts[:, 1]
    a = np.column_stack([x, y, np.ones_like(x)])
    b = -(x * x + y * y)
    (d, e, f), *_ = np.linalg.lstsq(a, b, rcond=None)

    cx, cy = -d / 2.0, -e / 2.0
    r_sq = cx * cx + cy * cy - f
    if r_sq <= 0:
        return None

    model = CircleModel(center=(float(cx), float(cy)), radius=float(math.sqrt(r_sq)))
    residuals = model.distances(pts)
    model.rms_error = float(np.sqrt(np.mean(residuals**2)))
    model.inliers = len(pts)
    return model


def _circle_from_three(p1: np.ndarray, p2: np.ndarray, p3: np.ndarray) -> Optional[CircleModel]:
    ax, ay = p1
    bx, by = p2
    cx, cy = p3
    d = 2.0 * (ax * (by - cy) + bx * (cy - ay) + cx * (ay - by))
    if abs(d) < 1e-9:
        return None

    a_sq, b_sq, c_sq = ax * ax + ay * ay, bx * bx + by * by, cx * cx + cy * cy
    ux = (a_sq * (by - cy) + b_sq * (cy - ay) + c_sq * (ay - by)) / d
    uy = (a_sq * (cx - bx) + b_sq * (ax - cx) + c_sq * (bx - ax)) / d
    return CircleModel(center=(ux, uy), radius=math.hypot(ax - ux, ay - uy))


def fit_circle_ransac(
    points: Sequence[Tuple[float, float]],
    threshold: float,
    iterations: int = ToolDefaults.RANSAC_ITERATIONS,
    seed: int = ToolDefaults.RANSAC_SEED,
) -> Optional[CircleModel]:
    """RANSAC over three-point circles, refit on the best consensus set."""
    pts = _as_points(points)
    if len(pts) < 3:
        return None

    rng = np.random.default_rng(seed)
    best_mask: Optional[np.ndarray] = None
    best_count = 0

    for _ in range(iterations):
        sample = rng.choice(len(pts), size=3, replace=False)
        candidate = _circle_from_three(*pts[sample])
        if candidate is None:
            continue
        mask = candidate.distances(pts) <= threshold
        count = int(mask.sum())
        if count > best_count:
            best_count, best_mask = count, mask

    if best_mask is None or best_count < 3:
        logger.debug("RANSAC circle fit found no consensus, falling back to least squares")
        return fit_circle_least_squares(pts)

    model = fit_circle_least_squares(pts[best_mask])
    if model is None:
        return None
    model.inliers = int((model.distances(pts) <= threshold).sum())
    return model
