"""
System API Router - Status and performance monitoring
"""

import logging
import time
from datetime import datetime

import psutil
from fastapi import APIRouter, Depends, Request

from api.dependencies import get_config, get_vision_service
from api.exceptions import safe_endpoint
from services.vision_service import VisionService

logger = logging.getLogger(__name__)

router = APIRouter()

# Track start time
START_TIME = time.time()


@router.get("/status")
@safe_endpoint
async def get_status(service: VisionService = Depends(get_vision_service)) -> dict:
    """Get system status"""
    process = psutil.Process()
    memory_info = process.memory_info()
    virtual_memory = psutil.virtual_memory()
    stats = service.get_statistics()

    return {
        "status": "healthy",
        "uptime": time.time() - START_TIME,
        "memory_usage": {
            "process_mb": memory_info.rss / 1024 / 1024,
            "system_percent": virtual_memory.percent,
            "available_mb": virtual_memory.available / 1024 / 1024,
        },
        "tool_count": stats["tool_count"],
        "connection_count": stats["connection_count"],
    }


@router.get("/performance")
@safe_endpoint
async def get_performance(service: VisionService = Depends(get_vision_service)) -> dict:
    """Get pipeline run statistics"""
    stats = service.get_statistics()

    uptime_minutes = (time.time() - START_TIME) / 60
    runs_per_minute = stats["total"] / uptime_minutes if uptime_minutes > 0 else 0

    return {
        "total_runs": stats["total"],
        "failed_runs": stats["failed"],
        "success_rate": stats["success_rate"],
        "avg_processing_time": stats["avg_time_ms"],
        "last_processing_time": stats["last_time_ms"],
        "max_processing_time": stats["max_time_ms"],
        "runs_per_minute": round(runs_per_minute, 2),
    }


@router.post("/debug/{enable}")
@safe_endpoint
async def set_debug_mode(enable: bool, request: Request) -> dict:
    """Switch root logging between DEBUG and INFO"""
    logging.getLogger().setLevel(logging.DEBUG if enable else logging.INFO)
    logger.info(f"Debug mode {'enabled' if enable else 'disabled'}")
    return {"enabled": enable}


@router.get("/config")
@safe_endpoint
async def get_current_config(config: dict = Depends(get_config)) -> dict:
    """Get current configuration"""
    return config


@router.get("/health")
async def health_check() -> dict:
    """Simple health check"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}
