"""
Domain exceptions for Vision Tool Flow.

Tool execution never raises (failures become ``VisionResult.success=False``);
these are for graph mutation and configuration building. The HTTP layer maps
them to status codes in ``api.exceptions``.
"""

from typing import Any, Dict, Optional


class VisionFlowError(Exception):
    """Base exception for all engine errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ToolGraphError(VisionFlowError):
    """Invalid mutation of the tool connection graph"""


class SelfConnectionError(ToolGraphError):
    def __init__(self, tool_id: str):
        super().__init__(
            f"Tool {tool_id} cannot be connected to itself", {"tool_id": tool_id}
        )


class CycleError(ToolGraphError):
    def __init__(self, message: str = "Tool connections contain a cycle", tool_ids=None):
        super().__init__(message, {"tool_ids": list(tool_ids or [])})


class UnknownToolError(ToolGraphError):
    def __init__(self, tool_id: str):
        super().__init__(f"Tool {tool_id} not found", {"tool_id": tool_id})


class ToolConfigurationError(VisionFlowError):
    """Tool configuration could not be built"""


class InvalidImageError(VisionFlowError):
    """Image payload could not be decoded or is unusable"""
