"""
Top-level pipeline execution.

run() is the only operation the host calls per request. It owns the
conversion of uncaught unit failures into a generic server error and the
release of open streams on failure or cancellation.
"""

import asyncio
import logging
import time

from switchyard.common.core.request_context import reset_request_id, set_request_id

from ..models.context import Context
from .combinators import Unit, invoke

logger = logging.getLogger("switchyard.pipeline")

INTERNAL_SERVER_ERROR_BODY = "Internal Server Error"


def _fail(context: Context) -> None:
    for name in list(context.response_headers):
        context.response_headers.delete(name)
    context.respond(500, INTERNAL_SERVER_ERROR_BODY, "text/plain; charset=utf-8")


async def run(pipeline: Unit, context: Context) -> Context:
    """
    Run ``pipeline`` over ``context`` and return the resulting Context.

    An unresponded result is returned as-is; choosing a fallback is the
    pipeline's job.
    """
    token = set_request_id(context.request_id)
    start_time = time.perf_counter()
    try:
        result = await invoke(pipeline, context)
    except asyncio.CancelledError:
        logger.info(
            "Pipeline cancelled",
            extra={"method": context.request_method, "path": context.request_path},
        )
        await context.aclose()
        raise
    except Exception as exc:
        logger.error(
            f"Pipeline failed: {exc}",
            exc_info=True,
            extra={
                "method": context.request_method,
                "path": context.request_path,
                "error_type": type(exc).__name__,
            },
        )
        await context.aclose()
        _fail(context)
        return context
    else:
        logger.debug(
            "Pipeline finished",
            extra={
                "status": result.response_status,
                "responded": result.responded,
                "latency_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )
        return result
    finally:
        reset_request_id(token)
