"""
Pipeline API Router - Pipeline editing and execution
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import decode_frame_image, get_vision_service
from api.exceptions import safe_endpoint
from config import get_settings
from core.enums import ConnectionType
from core.image.converters import ensure_grayscale
from core.image.processors import create_thumbnail
from schemas import (
    AddToolRequest,
    ConnectionRequest,
    ExecuteRequest,
    FrameData,
    ParametersUpdateRequest,
    PipelineExecuteResponse,
    PipelineLoadRequest,
    PipelineLoadResponse,
    ToolConfig,
    ToolResultResponse,
)
from services.pipeline_executor import PipelineRun, ToolRunResult
from services.tool_serializer import ToolSerializer
from services.vision_service import VisionService

logger = logging.getLogger(__name__)

router = APIRouter()


def _encode(image) -> Optional[str]:
    if image is None:
        return None
    settings = get_settings().pipeline
    _, encoded = create_thumbnail(image, width=settings.thumbnail_width, quality=settings.overlay_jpeg_quality)
    return encoded


def _tool_response(service: VisionService, record: ToolRunResult, return_images: bool) -> ToolResultResponse:
    tool = service.get_tool(record.tool_id)
    result = record.result
    return ToolResultResponse(
        tool_id=record.tool_id,
        tool_name=record.tool_name,
        tool_type=tool.tool_type.value,
        success=result.success,
        skipped=record.skipped,
        message=result.message,
        execution_time_ms=record.execution_time_ms,
        data=result.data,
        graphics=result.graphics,
        overlay_base64=_encode(result.overlay_image) if return_images else None,
    )


def _run_response(service: VisionService, run: PipelineRun, return_images: bool) -> PipelineExecuteResponse:
    return PipelineExecuteResponse(
        success=run.all_success,
        total_time_ms=run.total_time_ms,
        results=[_tool_response(service, r, return_images) for r in run.results],
        composite_overlay_base64=_encode(run.composite_overlay) if return_images else None,
    )


@router.get("")
@safe_endpoint
async def get_pipeline(service: VisionService = Depends(get_vision_service)) -> List[ToolConfig]:
    """Export the current pipeline as tool configs."""
    return service.export_pipeline()


@router.post("/load")
@safe_endpoint
async def load_pipeline(
    request: PipelineLoadRequest, service: VisionService = Depends(get_vision_service)
) -> PipelineLoadResponse:
    """Replace the pipeline; configuration problems are returned, not raised."""
    build = service.load_pipeline(request.tools)
    return PipelineLoadResponse(
        tool_count=len(build.tools),
        connection_count=len(build.graph),
        errors=build.errors,
    )


@router.post("/tools")
@safe_endpoint
async def add_tool(request: AddToolRequest, service: VisionService = Depends(get_vision_service)) -> dict:
    tool, errors = service.add_tool(request.tool_type, request.name, request.parameters)
    return {
        "tool": ToolSerializer.to_config(tool, service.graph, sequence=len(service.tools) - 1).model_dump(by_alias=True),
        "errors": errors,
    }


@router.get("/tools/{tool_id}")
@safe_endpoint
async def get_tool(tool_id: str, service: VisionService = Depends(get_vision_service)) -> ToolConfig:
    tool = service.get_tool(tool_id)
    return ToolSerializer.to_config(tool, service.graph, sequence=service.tools.index(tool))


@router.delete("/tools/{tool_id}")
@safe_endpoint
async def remove_tool(tool_id: str, service: VisionService = Depends(get_vision_service)) -> dict:
    removed = service.remove_tool(tool_id)
    return {"success": True, "removed_connections": removed}


@router.put("/tools/{tool_id}/parameters")
@safe_endpoint
async def update_parameters(
    tool_id: str,
    request: ParametersUpdateRequest,
    service: VisionService = Depends(get_vision_service),
) -> dict:
    errors = service.update_parameters(tool_id, request.parameters)
    return {"parameters": service.get_tool(tool_id).get_parameters(), "errors": errors}


@router.post("/tools/{tool_id}/train")
@safe_endpoint
async def train_pattern(
    tool_id: str,
    request: ExecuteRequest,
    name: Optional[str] = Query(None, description="Model name"),
    service: VisionService = Depends(get_vision_service),
) -> dict:
    """Train a feature match model; color images are converted to gray."""
    image = ensure_grayscale(decode_frame_image(request.image_base64))
    model = service.train_pattern(tool_id, image, name)
    return {
        "name": model.name,
        "point_count": model.point_count,
        "trained_center": {"x": model.trained_center[0], "y": model.trained_center[1]},
    }


@router.post("/connections")
@safe_endpoint
async def add_connection(request: ConnectionRequest, service: VisionService = Depends(get_vision_service)) -> dict:
    connection = service.connect(request.source_id, request.target_id, request.type)
    return {"source_id": connection.source_id, "target_id": connection.target_id, "type": connection.type.value}


@router.delete("/connections")
@safe_endpoint
async def remove_connection(
    source_id: str = Query(...),
    target_id: str = Query(...),
    type: Optional[ConnectionType] = Query(None, description="Only this connection type"),
    service: VisionService = Depends(get_vision_service),
) -> dict:
    removed = service.disconnect(source_id, target_id, type)
    return {"removed": removed}


@router.post("/execute")
@safe_endpoint
async def execute_pipeline(
    request: ExecuteRequest, service: VisionService = Depends(get_vision_service)
) -> PipelineExecuteResponse:
    """Run every enabled tool on the frame."""
    frame = FrameData.from_image(decode_frame_image(request.image_base64))
    run = service.execute(frame)
    return _run_response(service, run, request.return_images)


@router.post("/tools/{tool_id}/execute")
@safe_endpoint
async def execute_tool(
    tool_id: str, request: ExecuteRequest, service: VisionService = Depends(get_vision_service)
) -> PipelineExecuteResponse:
    """Run one tool (after its upstream tools)."""
    frame = FrameData.from_image(decode_frame_image(request.image_base64))
    run = service.execute_tool(tool_id, frame)
    return _run_response(service, run, request.return_images)
