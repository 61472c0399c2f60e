"""
Terminal units that produce a response.
"""

from http import HTTPStatus
from typing import Any, Optional

from ..core.combinators import Unit
from ..core.exceptions import PipelineConfigurationError
from ..models.context import Context, ResponseBody

TEXT_PLAIN = "text/plain; charset=utf-8"
REDIRECT_STATUSES = {301, 302, 303, 307, 308}


def respond(status: int, body: ResponseBody = None, content_type: Optional[str] = None) -> Unit:
    async def respond_unit(context: Context) -> Context:
        return context.respond(status, body, content_type)

    return respond_unit


def send_text(status: int, text: str) -> Unit:
    return respond(status, text, TEXT_PLAIN)


def send_json(status: int, payload: Any) -> Unit:
    async def send_json_unit(context: Context) -> Context:
        return context.respond_json(status, payload)

    return send_json_unit


def not_found() -> Unit:
    """Terminal fallback for requests no routing branch answered."""
    phrase = HTTPStatus.NOT_FOUND.phrase

    async def not_found_unit(context: Context) -> Context:
        if context.request_method == "HEAD":
            return context.respond(404, content_type=TEXT_PLAIN)
        return context.respond(404, phrase, TEXT_PLAIN)

    return not_found_unit


def redirect(status: int, location: str) -> Unit:
    if status not in REDIRECT_STATUSES:
        raise PipelineConfigurationError(f"redirect: {status} is not a redirect status")
    if not location:
        raise PipelineConfigurationError("redirect: location must not be empty")

    async def redirect_unit(context: Context) -> Context:
        context.response_headers.set("location", location)
        return context.respond(status)

    return redirect_unit
