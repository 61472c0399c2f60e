"""
Where: switchyard/pipeline/exceptions.py
What: FastAPI exception handler registration for the transport bridge.
Why: Keep error handling setup isolated from app assembly.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import PipelineConfigurationError

logger = logging.getLogger("switchyard.pipeline")


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for exceptions escaping the bridge.

    Unit failures are already converted by the runner; anything reaching this
    handler failed while building the Context or the response.
    """
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error"},
    )


async def configuration_error_handler(request: Request, exc: PipelineConfigurationError):
    logger.error(
        f"Pipeline misconfigured: {exc}",
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error"},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for HTTPException.
    """
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(PipelineConfigurationError, configuration_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
