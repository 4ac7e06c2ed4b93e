"""
1-D edge measurement primitives.

Profile sampling along a search segment, gradient filtering, candidate
extraction and the pluggable ``EdgeScorer`` used by the caliper tools.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2
import numpy as np

from core.constants import ToolDefaults
from core.enums import EdgePolarity, ScorerMode

# (contrast, position, polarity) weights of the scorer presets
SCORER_PRESETS = {
    ScorerMode.MAX_CONTRAST: (1.0, 0.0, 0.0),
    ScorerMode.CLOSEST: (0.0, 1.0, 0.0),
    ScorerMode.BEST_OVERALL: (1.0, 1.0, 1.0),
}


@dataclass
class EdgeCandidate:
    """One edge found along a profile"""

    position: float  # sub-pixel offset along the profile
    strength: float  # signed gradient value
    polarity: EdgePolarity
    x: float = 0.0  # frame coordinates
    y: float = 0.0
    score: float = 0.0
    contrast_score: float = 0.0
    position_score: float = 0.0
    polarity_score: float = 0.0


@dataclass
class EdgePair:
    first: EdgeCandidate
    second: EdgeCandidate
    width: float
    score: float

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.first.x + self.second.x) / 2.0, (self.first.y + self.second.y) / 2.0)


def sample_profile(
    image: np.ndarray,
    start: Tuple[float, float],
    end: Tuple[float, float],
    width: int,
) -> np.ndarray:
    """
    Average intensity profile along a segment.

    The strip of ``width`` pixels centered on the segment is warped into an
    axis-aligned image (rows across, columns along the segment) and averaged
    across its rows.

    Args:
        image: Single-channel image
        start: Segment start (x, y)
        end: Segment end (x, y)
        width: Strip width perpendicular to the segment

    Returns:
        float64 array with one sample per pixel of segment length
    """
    sx, sy = start
    ex, ey = end
    length = int(round(math.hypot(ex - sx, ey - sy)))
    if length < 1:
        return np.zeros(0, dtype=np.float64)

    width = max(1, int(width))
    ux, uy = (ex - sx) / length, (ey - sy) / length
    nx, ny = -uy, ux
    half = (width - 1) / 2.0

    origin = (sx - nx * half, sy - ny * half)
    src = np.float32(
        [
            origin,
            (origin[0] + ux * length, origin[1] + uy * length),
            (origin[0] + nx * width, origin[1] + ny * width),
        ]
    )
    dst = np.float32([(0, 0), (length, 0), (0, width)])

    strip = cv2.warpAffine(
        image.astype(np.float32),
        cv2.getAffineTransform(src, dst),
        (length, width),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_REPLICATE,
    )
    return cv2.reduce(strip, 0, cv2.REDUCE_AVG, dtype=cv2.CV_64F).flatten()


def compute_gradient(profile: np.ndarray, half_width: int) -> np.ndarray:
    """
    Smoothed first derivative of a profile.

    ``g[i] = sum(profile[i + j] * j for j in -h..h) / (2h + 1)``; samples
    closer than ``h`` to either end are zero.
    """
    h = max(1, int(half_width))
    n = len(profile)
    gradient = np.zeros(n, dtype=np.float64)
    if n <= 2 * h:
        return gradient

    kernel = np.arange(-h, h + 1, dtype=np.float64)
    # np.correlate keeps the kernel orientation: out[k] = sum(p[k + j] * kernel[j])
    gradient[h : n - h] = np.correlate(profile, kernel, mode="valid") / (2 * h + 1)
    return gradient


def polarity_of(strength: float) -> EdgePolarity:
    return EdgePolarity.DARK_TO_LIGHT if strength > 0 else EdgePolarity.LIGHT_TO_DARK


def find_candidates(gradient: np.ndarray, threshold: float) -> List[EdgeCandidate]:
    """
    Local maxima of ``|gradient|`` at or above ``threshold``.

    Positions are refined with a parabola through the peak and its
    neighbours; the offset is clamped to half a sample.
    """
    magnitude = np.abs(gradient)
    candidates: List[EdgeCandidate] = []

    for i in range(1, len(magnitude) - 1):
        m = magnitude[i]
        if m < threshold or m < magnitude[i - 1] or m < magnitude[i + 1]:
            continue
        # plateau: keep only its first sample
        if m == magnitude[i - 1]:
            continue

        left, right = magnitude[i - 1], magnitude[i + 1]
        denom = left - 2.0 * m + right
        offset = 0.0
        if abs(denom) > 1e-12:
            offset = 0.5 * (left - right) / denom
        limit = ToolDefaults.SUBPIXEL_MAX_OFFSET
        offset = max(-limit, min(limit, offset))

        strength = float(gradient[i])
        candidates.append(EdgeCandidate(position=i + offset, strength=strength, polarity=polarity_of(strength)))

    return candidates


class EdgeScorer:
    """
    Weighted edge scoring model.

    ``score = (wc * contrast + wp * position + wpol * polarity) / (wc + wp + wpol)``

    where ``contrast = |g| / max|g|``, ``position`` is a Gaussian of the
    distance to the expected position and ``polarity`` is 1 for a match.
    A weight total of zero is treated as one.
    """

    def __init__(
        self,
        contrast_weight: float = 1.0,
        position_weight: float = 0.0,
        polarity_weight: float = 0.0,
        position_sigma: float = ToolDefaults.CALIPER_POSITION_SIGMA,
    ):
        self.contrast_weight = contrast_weight
        self.position_weight = position_weight
        self.polarity_weight = polarity_weight
        self.position_sigma = max(1e-6, position_sigma)

    def score(
        self,
        candidates: List[EdgeCandidate],
        expected_position: float,
        polarity: EdgePolarity,
    ) -> List[EdgeCandidate]:
        """Fill the score fields of ``candidates`` in place and return them."""
        if not candidates:
            return candidates

        max_strength = max(abs(c.strength) for c in candidates) or 1.0
        total = self.contrast_weight + self.position_weight + self.polarity_weight
        if total <= 0:
            total = 1.0
        two_sigma_sq = 2.0 * self.position_sigma**2

        for c in candidates:
            c.contrast_score = abs(c.strength) / max_strength
            d = c.position - expected_position
            c.position_score = math.exp(-(d * d) / two_sigma_sq)
            c.polarity_score = 1.0 if polarity == EdgePolarity.ANY or c.polarity == polarity else 0.0
            c.score = (
                self.contrast_weight * c.contrast_score
                + self.position_weight * c.position_score
                + self.polarity_weight * c.polarity_score
            ) / total
        return candidates


def select_edges(
    gradient: np.ndarray,
    threshold: float,
    polarity: EdgePolarity,
    scorer: EdgeScorer,
    expected_position: float,
    max_edges: int,
) -> List[EdgeCandidate]:
    """
    Candidates filtered by polarity, scored and sorted best first.

    Polarity is a hard filter unless the scorer weights it, in which case
    mismatching edges are kept with a polarity score of zero.
    """
    candidates = find_candidates(gradient, threshold)
    if polarity != EdgePolarity.ANY and scorer.polarity_weight <= 0:
        candidates = [c for c in candidates if c.polarity == polarity]

    scorer.score(candidates, expected_position, polarity)
    candidates.sort(key=lambda c: c.score, reverse=True)
    return candidates[:max_edges]


def find_pairs(
    edges: List[EdgeCandidate],
    expected_width: float,
    tolerance: float,
) -> List[EdgePair]:
    """
    Opposite-polarity edge pairs whose span is within tolerance.

    Sorted by how close the span is to ``expected_width``.
    """
    ordered = sorted(edges, key=lambda c: c.position)
    pairs: List[EdgePair] = []

    for i, first in enumerate(ordered):
        for second in ordered[i + 1 :]:
            if first.polarity == second.polarity:
                continue
            width = second.position - first.position
            if abs(width - expected_width) <= tolerance:
                pairs.append(EdgePair(first, second, width, (first.score + second.score) / 2.0))

    pairs.sort(key=lambda pair: abs(pair.width - expected_width))
    return pairs


def strongest_edge(
    profile: np.ndarray,
    threshold: float,
    polarity: EdgePolarity,
) -> Optional[Tuple[float, float]]:
    """
    Strongest edge of a short caliper profile.

    Uses the 5-tap derivative ``(-p[i-2] - p[i-1] + p[i+1] + p[i+2]) / 4``.

    Returns:
        (position, signed strength) or None when nothing passes
    """
    n = len(profile)
    if n < 5:
        return None

    gradient = (-profile[:-4] - profile[1:-3] + profile[3:-1] + profile[4:]) / 4.0
    if polarity == EdgePolarity.DARK_TO_LIGHT:
        strength = gradient
    elif polarity == EdgePolarity.LIGHT_TO_DARK:
        strength = -gradient
    else:
        strength = np.abs(gradient)

    best = int(np.argmax(strength))
    if strength[best] < threshold:
        return None

    offset = 0.0
    if 0 < best < len(strength) - 1:
        left, mid, right = strength[best - 1], strength[best], strength[best + 1]
        denom = left - 2.0 * mid + right
        if abs(denom) > 1e-12:
            limit = ToolDefaults.SUBPIXEL_MAX_OFFSET
            offset = max(-limit, min(limit, 0.5 * (left - right) / denom))

    return best + 2 + offset, float(gradient[best])


def caliper_edge_point(
    gray: np.ndarray,
    center: Tuple[float, float],
    direction: Tuple[float, float],
    search_length: float,
    search_width: int,
    threshold: float,
    polarity: EdgePolarity,
) -> Optional[Tuple[float, float]]:
    """
    Run one short caliper centered on ``center`` along unit ``direction``.

    Returns:
        Frame coordinates of the strongest edge, or None
    """
    half = search_length / 2.0
    start = (center[0] - direction[0] * half, center[1] - direction[1] * half)
    end = (center[0] + direction[0] * half, center[1] + direction[1] * half)

    profile = sample_profile(gray, start, end, search_width)
    found = strongest_edge(profile, threshold, polarity)
    if found is None:
        return None

    position, _ = found
    return (start[0] + direction[0] * position, start[1] + direction[1] * position)
