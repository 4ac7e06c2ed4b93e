"""
Pipeline API request and response models.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.enums import ConnectionType, ToolType

from .results import GraphicOverlay
from .tool_config import ToolConfig


class PipelineLoadRequest(BaseModel):
    """Replace the current pipeline with these tool configs"""

    tools: List[ToolConfig] = Field(default_factory=list)


class PipelineLoadResponse(BaseModel):
    tool_count: int
    connection_count: int
    errors: List[str] = Field(default_factory=list)


class AddToolRequest(BaseModel):
    tool_type: ToolType
    name: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ConnectionRequest(BaseModel):
    source_id: str
    target_id: str
    type: ConnectionType = ConnectionType.IMAGE


class ParametersUpdateRequest(BaseModel):
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ExecuteRequest(BaseModel):
    """Frame to run through the pipeline"""

    image_base64: str = Field(..., description="Base64 encoded PNG/JPEG frame")
    return_images: bool = Field(default=True, description="Include encoded overlay thumbnails")


class ToolResultResponse(BaseModel):
    tool_id: str
    tool_name: str
    tool_type: str
    success: bool
    skipped: bool = False
    message: str = ""
    execution_time_ms: float = 0.0
    data: Dict[str, Any] = Field(default_factory=dict)
    graphics: List[GraphicOverlay] = Field(default_factory=list)
    overlay_base64: Optional[str] = None


class PipelineExecuteResponse(BaseModel):
    success: bool
    total_time_ms: float
    results: List[ToolResultResponse] = Field(default_factory=list)
    composite_overlay_base64: Optional[str] = None


class ToolTypeInfo(BaseModel):
    tool_type: str
    default_name: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
