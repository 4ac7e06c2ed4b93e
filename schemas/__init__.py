"""
Schemas Package

Pydantic models (and a few dataclasses) shared across all layers:
- Core (geometry helpers)
- Vision (tools)
- Services (graph, executor, serializer)
- API (routers)
"""

# Re-export enums from centralized location for convenience
from core.enums import ConnectionType, GraphicType, ToolType

from .blob import BlobRecord
from .common import ROI, Point
from .frame import FrameData
from .pipeline import (
    AddToolRequest,
    ConnectionRequest,
    ExecuteRequest,
    ParametersUpdateRequest,
    PipelineExecuteResponse,
    PipelineLoadRequest,
    PipelineLoadResponse,
    ToolResultResponse,
    ToolTypeInfo,
)
from .results import GraphicOverlay, VisionResult
from .tool_config import ToolConfig, ToolConnectionConfig

__all__ = [
    # Geometry
    "ROI",
    "Point",
    # Results
    "GraphicOverlay",
    "VisionResult",
    "BlobRecord",
    "FrameData",
    # Configuration
    "ToolConfig",
    "ToolConnectionConfig",
    # API models
    "AddToolRequest",
    "ConnectionRequest",
    "ExecuteRequest",
    "ParametersUpdateRequest",
    "PipelineExecuteResponse",
    "PipelineLoadRequest",
    "PipelineLoadResponse",
    "ToolResultResponse",
    "ToolTypeInfo",
    # Enums (re-exported from core.enums)
    "ConnectionType",
    "GraphicType",
    "ToolType",
]
