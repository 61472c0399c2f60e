"""
Timeout wrapper unit.
"""

import asyncio
import logging

from ..core.combinators import Unit, invoke
from ..core.exceptions import PipelineConfigurationError
from ..models.context import Context
from ..models.response_body import close_body

logger = logging.getLogger("switchyard.pipeline")


def timeout(seconds: float, unit: Unit) -> Unit:
    """
    Run ``unit`` with a deadline; an expired unit yields a 504 response.

    The inner unit is cancelled on expiry, so its scoped resources are
    released by its own cleanup.
    """
    if seconds <= 0:
        raise PipelineConfigurationError("timeout: seconds must be positive")
    if not callable(unit):
        raise PipelineConfigurationError("timeout: inner unit is not callable")

    async def timeout_unit(context: Context) -> Context:
        try:
            return await asyncio.wait_for(invoke(unit, context), timeout=seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Unit timed out",
                extra={"path": context.request_path, "timeout_seconds": seconds},
            )
            # A partial response from the cancelled unit is discarded with its stream.
            await close_body(context.response_body)
            for name in list(context.response_headers):
                context.response_headers.delete(name)
            context.respond(504, "Gateway Timeout", "text/plain; charset=utf-8")
            return context

    return timeout_unit
