"""
Vision tools.

``TOOL_REGISTRY`` maps each ``ToolType`` to its implementation; it is the
single place the serializer and the API look tool kinds up.
"""

from typing import Dict, Optional, Type

from core.constants import ErrorMessages
from core.enums import ToolType
from core.exceptions import ToolConfigurationError

from .base import ImageProcessingTool, ToolParams, VisionTool
from .blob import BlobParams, BlobTool
from .blur import BlurParams, BlurTool
from .caliper import CaliperParams, CaliperTool
from .circle_fit import CircleFitParams, CircleFitTool
from .edge_detection import EdgeDetectionParams, EdgeDetectionTool
from .feature_match import FeatureMatchParams, FeatureMatchTool
from .grayscale import GrayscaleTool
from .height_slicer import HeightSlicerParams, HeightSlicerTool
from .histogram import HistogramParams, HistogramTool
from .line_fit import LineFitParams, LineFitTool
from .morphology import MorphologyParams, MorphologyTool
from .threshold import ThresholdParams, ThresholdTool

TOOL_REGISTRY: Dict[ToolType, Type[VisionTool]] = {
    cls.tool_type: cls
    for cls in (
        GrayscaleTool,
        BlurTool,
        ThresholdTool,
        EdgeDetectionTool,
        MorphologyTool,
        HistogramTool,
        HeightSlicerTool,
        FeatureMatchTool,
        BlobTool,
        CaliperTool,
        LineFitTool,
        CircleFitTool,
    )
}


def create_tool(tool_type, name: Optional[str] = None, tool_id: Optional[str] = None) -> VisionTool:
    """
    Instantiate a tool with default parameters.

    Args:
        tool_type: ``ToolType`` or its string tag (e.g. "BlobTool")

    Raises:
        ToolConfigurationError: Unknown tool type
    """
    try:
        key = ToolType(tool_type)
    except ValueError:
        raise ToolConfigurationError(ErrorMessages.UNKNOWN_TOOL_TYPE.format(tool_type=tool_type))
    return TOOL_REGISTRY[key](name=name, tool_id=tool_id)


__all__ = [
    "TOOL_REGISTRY",
    "create_tool",
    "VisionTool",
    "ImageProcessingTool",
    "ToolParams",
    "BlobParams",
    "BlobTool",
    "BlurParams",
    "BlurTool",
    "CaliperParams",
    "CaliperTool",
    "CircleFitParams",
    "CircleFitTool",
    "EdgeDetectionParams",
    "EdgeDetectionTool",
    "FeatureMatchParams",
    "FeatureMatchTool",
    "GrayscaleTool",
    "HeightSlicerParams",
    "HeightSlicerTool",
    "HistogramParams",
    "HistogramTool",
    "LineFitParams",
    "LineFitTool",
    "MorphologyParams",
    "MorphologyTool",
    "ThresholdParams",
    "ThresholdTool",
]
