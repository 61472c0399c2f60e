"""
Where: switchyard/pipeline/transport.py
What: Bridge between Starlette/FastAPI requests and the pipeline Context.
Why: The core never touches sockets; this module builds a Context per request,
     runs the pipeline and transmits the response facet.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Optional, Tuple

from fastapi import FastAPI, Request
from starlette.responses import Response, StreamingResponse

from switchyard.common.core.http_client import HttpClientFactory

from .config import PipelineConfig, config
from .core.combinators import Unit
from .core.exceptions import PipelineConfigurationError
from .core.runner import run
from .exceptions import register_exception_handlers
from .middlewares.access_log import START_TIME_KEY
from .models.body import RequestBody
from .models.context import Context
from .models.response_body import close_body, is_stream

logger = logging.getLogger("switchyard.pipeline")

HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


class NoResponseError(PipelineConfigurationError):
    """Raised when a request fell through every unit without a response."""

    def __init__(self, context: Context):
        self.context = context
        super().__init__(
            f"No unit responded to {context.request_method} {context.request_path}; "
            "add a terminal fallback such as not_found()"
        )


def context_from_request(request: Request, *, body_limit: Optional[int] = None) -> Context:
    """Build a fresh Context from a Starlette request."""
    scope = request.scope
    raw_path = scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else scope.get("path", "/")
    headers = [
        (name.decode("latin-1"), value.decode("latin-1")) for name, value in request.headers.raw
    ]
    client = (request.client.host, request.client.port) if request.client else None

    context = Context(
        request.method,
        path.split("?", 1)[0],
        query=request.url.query,
        headers=headers,
        body=RequestBody(request.stream(), limit=body_limit),
        http_version=scope.get("http_version", "1.1"),
        client=client,
    )
    context.state[START_TIME_KEY] = time.perf_counter()
    return context


def _raw_headers(headers: Iterable[Tuple[str, str]]) -> List[Tuple[bytes, bytes]]:
    return [(name.encode("latin-1"), value.encode("latin-1")) for name, value in headers]


async def _iter_stream(body) -> AsyncIterator[bytes]:
    try:
        async for chunk in body:
            yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk
    finally:
        await close_body(body)


async def response_from_context(context: Context) -> Response:
    """
    Convert the response facet into a Starlette response.

    Stream bodies become a StreamingResponse; HEAD requests never carry a body.
    """
    status = context.response_status or 200
    headers = context.response_headers.items()
    body = context.response_body

    if context.request_method == "HEAD" or status in (204, 304) or status < 200:
        await close_body(body)
        response = Response(status_code=status)
        response.raw_headers = _raw_headers(headers)
        return response

    if is_stream(body):
        response = StreamingResponse(_iter_stream(body), status_code=status)
        response.raw_headers = _raw_headers(headers)
        return response

    content = body.encode("utf-8") if isinstance(body, str) else (body or b"")
    response = Response(content=content, status_code=status)
    raw = [(name, value) for name, value in headers if name != "content-length"]
    raw.append(("content-length", str(len(content))))
    response.raw_headers = _raw_headers(raw)
    return response


def create_app(
    pipeline: Unit,
    *,
    app_config: Optional[PipelineConfig] = None,
    closeables: Iterable = (),
) -> FastAPI:
    """
    Assemble a FastAPI app that serves every request through ``pipeline``.

    Args:
        pipeline: root unit, usually a chain_all
        app_config: configuration (module singleton by default)
        closeables: objects with an async ``aclose()`` released on shutdown
    """
    app_config = app_config or config
    resources = list(closeables)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        HttpClientFactory(app_config).configure_global_settings()
        logger.info("Pipeline server starting")
        try:
            yield
        finally:
            for resource in resources:
                await resource.aclose()
            logger.info("Pipeline server stopped")

    app = FastAPI(
        title="switchyard",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    register_exception_handlers(app)

    @app.api_route("/{full_path:path}", methods=HTTP_METHODS, include_in_schema=False)
    async def handle(request: Request) -> Response:
        context = context_from_request(request, body_limit=app_config.MAX_REQUEST_BODY_BYTES)
        context = await run(pipeline, context)
        if not context.responded:
            raise NoResponseError(context)
        return await response_from_context(context)

    app.state.pipeline = pipeline
    return app
