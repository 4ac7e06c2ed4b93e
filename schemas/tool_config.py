"""
Serializable tool configuration records.

JSON uses camelCase keys (``toolType``, ``useROI``, ``roiX``...); Python code
uses the snake_case attribute names. Dump with ``by_alias=True`` for storage.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.enums import ConnectionType


class ToolConnectionConfig(BaseModel):
    """Incoming connection stored on the target tool's config"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_tool_id: str
    connection_type: ConnectionType = ConnectionType.IMAGE


class ToolConfig(BaseModel):
    """Persisted form of one tool instance"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default="", description="Tool instance id")
    tool_type: str = Field(..., description="Type tag, e.g. 'BlobTool'")
    name: str = Field(default="")
    sequence: int = Field(default=0, ge=0, description="Position in the step's tool list")
    is_enabled: bool = True
    x: float = Field(default=0.0, description="Canvas X (carried through, unused by the engine)")
    y: float = Field(default=0.0, description="Canvas Y (carried through, unused by the engine)")
    use_roi: bool = Field(default=False, alias="useROI")
    roi_x: int = 0
    roi_y: int = 0
    roi_width: int = 0
    roi_height: int = 0
    parameters: Dict[str, Any] = Field(default_factory=dict)
    connections: List[ToolConnectionConfig] = Field(default_factory=list)
