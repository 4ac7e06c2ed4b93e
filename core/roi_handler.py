"""
Region of Interest (ROI) handler for Vision Tool Flow.

Every tool scopes its work with the same three steps:
- adjust_roi: normalize and clamp the configured rectangle to the image
- extract_work_region: crop the image (or alias it when no ROI applies)
- composite_result: paste the processed region back into a full-frame copy

NOTE: extract_work_region may return the input array itself. Callers must
      treat that return value as read-only.
"""

import logging
from typing import Dict, Optional, Tuple, Union

import numpy as np

from core.image.converters import match_channels
from schemas import ROI

logger = logging.getLogger(__name__)


class ROIHandler:
    """
    Handler for ROI clamping, extraction and result compositing.
    """

    @staticmethod
    def adjust_roi(image: np.ndarray, roi: Union[ROI, Dict]) -> ROI:
        """
        Clamp ROI to image bounds.

        Negative width/height are normalized first, so a rectangle drawn
        from its bottom-right corner behaves like the equivalent one drawn
        from the top-left.

        Args:
            image: Image the ROI applies to
            roi: ROI object or dictionary

        Returns:
            ROI inside the image (possibly empty)
        """
        if isinstance(roi, dict):
            roi = ROI.from_dict(roi)

        img_height, img_width = image.shape[:2]
        return roi.normalized().clip(img_width, img_height)

    @staticmethod
    def extract_work_region(image: np.ndarray, use_roi: bool, roi: Union[ROI, Dict]) -> np.ndarray:
        """
        Get the buffer a tool should process.

        Args:
            image: Full input image
            use_roi: Whether ROI scoping is enabled
            roi: Configured ROI

        Returns:
            ``image`` itself when ROI is disabled or empty after clamping,
            otherwise a cropped copy
        """
        if not use_roi:
            return image

        adjusted = ROIHandler.adjust_roi(image, roi)
        if adjusted.is_empty:
            logger.debug(f"ROI {roi} is empty after clamping, using full image")
            return image

        return image[adjusted.y : adjusted.y2, adjusted.x : adjusted.x2].copy()

    @staticmethod
    def roi_offset(image: np.ndarray, use_roi: bool, roi: Union[ROI, Dict]) -> Tuple[int, int]:
        """
        Offset of the work region returned by ``extract_work_region``.

        Returns:
            (x_offset, y_offset), (0, 0) when the full image is used
        """
        if not use_roi:
            return (0, 0)

        adjusted = ROIHandler.adjust_roi(image, roi)
        if adjusted.is_empty:
            return (0, 0)
        return (adjusted.x, adjusted.y)

    @staticmethod
    def composite_result(
        original: np.ndarray, processed: np.ndarray, roi: Optional[Union[ROI, Dict]]
    ) -> np.ndarray:
        """
        Paste a processed region back into a full-size copy of the original.

        ``processed`` is either exactly the ROI size or full frame size (then
        the ROI part of it is used). Its channel count is converted to the
        original's before pasting.

        Args:
            original: Full-frame input image
            processed: Result of processing the work region
            roi: ROI the work region was cut from (None = whole image)

        Returns:
            New full-frame buffer
        """
        result = original.copy()
        converted = match_channels(processed, original)
        if converted.dtype != original.dtype:
            converted = converted.astype(original.dtype)

        if roi is None:
            if converted.shape[:2] == original.shape[:2]:
                return converted.copy()
            logger.warning(
                f"Processed size {converted.shape[:2]} does not match "
                f"original {original.shape[:2]} and no ROI was given"
            )
            return result

        adjusted = ROIHandler.adjust_roi(original, roi)
        if adjusted.is_empty:
            if converted.shape[:2] == original.shape[:2]:
                return converted.copy()
            return result

        if converted.shape[:2] == original.shape[:2]:
            patch = converted[adjusted.y : adjusted.y2, adjusted.x : adjusted.x2]
        else:
            patch = converted[: adjusted.height, : adjusted.width]

        h, w = patch.shape[:2]
        result[adjusted.y : adjusted.y + h, adjusted.x : adjusted.x + w] = patch
        return result

