"""
Core modules for Vision Tool Flow
"""

from .exceptions import (
    CycleError,
    InvalidImageError,
    SelfConnectionError,
    ToolConfigurationError,
    ToolGraphError,
    UnknownToolError,
    VisionFlowError,
)

__all__ = [
    "VisionFlowError",
    "ToolGraphError",
    "SelfConnectionError",
    "CycleError",
    "UnknownToolError",
    "ToolConfigurationError",
    "InvalidImageError",
]
