"""
Vision Tool Flow - Main FastAPI Application
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.exceptions import register_exception_handlers
from api.routers import pipeline, system, tools
from config import get_settings
from core.constants import SystemConstants
from services.vision_service import VisionService

# Get configuration
settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.system.log_level),
    format=SystemConstants.LOG_FORMAT,
)
logger = logging.getLogger(__name__)

# Suppress watchfiles debug messages
logging.getLogger("watchfiles").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    logger.info("Starting Vision Tool Flow server...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.system.debug}")

    app.state.vision_service = VisionService()
    app.state.config = settings.to_dict()
    app.state.debug = settings.system.debug

    yield

    logger.info("Server shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Vision Tool Flow",
    description="Configurable machine vision tool pipelines",
    version="1.0.0",
    lifespan=lifespan,
)

if settings.api.cors_enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Register exception handlers
register_exception_handlers(app)

# Include routers
app.include_router(pipeline.router, prefix="/api/pipeline", tags=["Pipeline"])
app.include_router(tools.router, prefix="/api/tools", tags=["Tools"])
app.include_router(system.router, prefix="/api/system", tags=["System"])


# Root endpoint
@app.get("/")
async def root():
    return {
        "name": "Vision Tool Flow",
        "status": "running",
        "version": "1.0.0",
        "endpoints": {
            "pipeline": "/api/pipeline",
            "tools": "/api/tools",
            "system": "/api/system",
            "docs": "/docs",
        },
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "services": {
            "vision_service": getattr(app.state, "vision_service", None) is not None,
        },
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.system.debug,
        log_level=settings.system.log_level.lower(),
    )
