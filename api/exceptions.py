"""
HTTP mapping of engine exceptions.

``register_exception_handlers`` turns ``VisionFlowError`` subclasses into
JSON error responses; ``safe_endpoint`` wraps route handlers so unexpected
errors are logged and reported as 500.
"""

import functools
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from core.exceptions import (
    InvalidImageError,
    ToolConfigurationError,
    ToolGraphError,
    UnknownToolError,
    VisionFlowError,
)

logger = logging.getLogger(__name__)

# Most specific first
STATUS_CODES = [
    (UnknownToolError, 404),
    (ToolGraphError, 400),
    (ToolConfigurationError, 422),
    (InvalidImageError, 400),
    (VisionFlowError, 400),
]


def status_for(exc: VisionFlowError) -> int:
    for exc_class, status in STATUS_CODES:
        if isinstance(exc, exc_class):
            return status
    return 500


def register_exception_handlers(app: FastAPI) -> None:
    """Install the ``VisionFlowError`` handler on ``app``."""

    @app.exception_handler(VisionFlowError)
    async def vision_flow_error_handler(request: Request, exc: VisionFlowError):
        status = status_for(exc)
        logger.warning(f"{request.method} {request.url.path} -> {status}: {exc.message}")
        return JSONResponse(
            status_code=status,
            content={"detail": exc.message, "error": type(exc).__name__, "details": exc.details},
        )


def safe_endpoint(func):
    """
    Decorator for async route handlers.

    Domain and HTTP errors pass through to their handlers; anything else is
    logged with its traceback and reported as a 500.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (HTTPException, VisionFlowError):
            raise
        except Exception as e:
            logger.exception(f"Unhandled error in {func.__name__}: {e}")
            raise HTTPException(status_code=500, detail=f"Internal server error: {e}")

    return wrapper
