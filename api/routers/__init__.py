"""
API Routers for Vision Tool Flow
"""

from . import pipeline, system, tools

__all__ = ["pipeline", "tools", "system"]
