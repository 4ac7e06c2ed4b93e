"""
Tools API Router - Available tool kinds
"""

from typing import List

from fastapi import APIRouter

from schemas import ToolTypeInfo
from services.vision_service import VisionService

router = APIRouter()


@router.get("/types")
async def list_tool_types() -> List[ToolTypeInfo]:
    """List every tool type with its default parameters."""
    return VisionService.tool_types()
