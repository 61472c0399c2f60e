"""
Access logging unit.
"""

import logging
import time

from ..core.combinators import Unit
from ..models.context import Context

START_TIME_KEY = "started_at"


def log_request(logger_name: str = "switchyard.access", level: int = logging.INFO) -> Unit:
    """
    Log one structured line per request.

    Place it last in the outermost chain_all so that it sees the final
    status. Latency is measured from ``context.state["started_at"]``, which
    the transport records when it builds the Context.
    """
    logger = logging.getLogger(logger_name)

    async def log_request_unit(context: Context) -> Context:
        started = context.state.get(START_TIME_KEY)
        latency_ms = round((time.perf_counter() - started) * 1000, 2) if started else None
        status = context.response_status
        logger.log(
            level,
            f"{context.request_method} {context.request_path} {status if status is not None else '-'}",
            extra={
                "request_id": context.request_id,
                "method": context.request_method,
                "path": context.request_path,
                "query_params": context.request_query,
                "host": context.request_hostname,
                "status": status,
                "latency_ms": latency_ms,
                "user_agent": context.request_headers.get("user-agent"),
                "client_ip": context.client[0] if context.client else None,
            },
        )
        return context

    return log_request_unit
