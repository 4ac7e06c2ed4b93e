"""
Coordinate adjustment utilities.

Tools process a cropped work region; these helpers move contours and
points from ROI-local coordinates back into the full frame.
"""

from typing import List, Sequence, Tuple

import numpy as np


class CoordinateAdjuster:
    """
    Utility class for adjusting coordinates based on ROI offset.
    """

    @staticmethod
    def offset_contours(contours: Sequence[np.ndarray], roi_offset: Tuple[int, int]) -> List[np.ndarray]:
        """
        Translate contours by the ROI offset.

        Args:
            contours: OpenCV contours, each (N, 1, 2) int32
            roi_offset: (x_offset, y_offset) of the work region

        Returns:
            New list of translated contours (inputs are not modified)

        Example:
            >>> contours = CoordinateAdjuster.offset_contours(contours, (100, 50))
            >>> # All contour points now relative to full image
        """
        x_offset, y_offset = roi_offset
        shift = np.array([x_offset, y_offset], dtype=np.int32)
        return [(contour + shift).astype(np.int32) for contour in contours]
