"""
Cross-Origin Resource Sharing headers.
"""

from typing import Iterable, Optional, Union

from ..core.combinators import Unit
from ..core.exceptions import PipelineConfigurationError
from ..models.context import Context


def _join(values: Optional[Iterable[str]]) -> str:
    return ", ".join(values) if values else ""


def cors(
    allow_origin: Union[str, Iterable[str]] = "*",
    *,
    allow_methods: Optional[Iterable[str]] = None,
    allow_headers: Optional[Iterable[str]] = None,
    expose_headers: Optional[Iterable[str]] = None,
    allow_credentials: bool = False,
    max_age: Optional[int] = None,
) -> Unit:
    """
    Add CORS response headers for requests carrying an ``origin`` header.

    Preflight requests (OPTIONS with ``access-control-request-method``) also
    get the allow-methods/allow-headers/max-age headers. The unit never
    responds by itself; answering the preflight is left to the routing stage.
    """
    wildcard = allow_origin == "*"
    origins = set() if wildcard else {allow_origin} if isinstance(allow_origin, str) else set(allow_origin)
    if not wildcard and not origins:
        raise PipelineConfigurationError("cors: allow_origin must not be empty")
    if wildcard and allow_credentials:
        raise PipelineConfigurationError("cors: credentials cannot be combined with a '*' origin")
    methods = _join([m.upper() for m in allow_methods] if allow_methods else None)
    request_headers = _join(allow_headers)
    exposed = _join(expose_headers)

    async def cors_unit(context: Context) -> Context:
        origin = context.request_headers.get("origin")
        if origin is None:
            return context

        headers = context.response_headers
        if wildcard:
            headers.set("access-control-allow-origin", "*")
        elif origin in origins:
            headers.set("access-control-allow-origin", origin)
            headers.append("vary", "origin")
        else:
            return context

        if allow_credentials:
            headers.set("access-control-allow-credentials", "true")
        if exposed:
            headers.set("access-control-expose-headers", exposed)

        is_preflight = (
            context.request_method == "OPTIONS"
            and "access-control-request-method" in context.request_headers
        )
        if is_preflight:
            if methods:
                headers.set("access-control-allow-methods", methods)
            if request_headers:
                headers.set("access-control-allow-headers", request_headers)
            if max_age is not None:
                headers.set("access-control-max-age", max_age)
        return context

    return cors_unit
