"""
Request-processing pipeline.

Units are functions over a Context; combinators assemble them into a single
unit and run() executes it for one request.
"""

from .core.combinators import Unit, chain_all, chain_until_response, invoke
from .core.conditionals import (
    CSS,
    HTML,
    JAVASCRIPT,
    JSON,
    SVG,
    TEXT,
    XML,
    if_basic_auth,
    if_content_type,
    if_hostname,
    route,
)
from .core.exceptions import (
    HeadersFrozenError,
    InvalidUnitResultError,
    PipelineConfigurationError,
    PipelineError,
    RequestBodyConsumedError,
    RequestBodyTooLargeError,
    RouteTemplateError,
    UnitError,
    UpstreamError,
)
from .core.route_pattern import RoutePattern
from .core.runner import run
from .models import Context, Headers, RequestBody

__all__ = [
    "CSS",
    "Context",
    "HTML",
    "Headers",
    "HeadersFrozenError",
    "InvalidUnitResultError",
    "JAVASCRIPT",
    "JSON",
    "PipelineConfigurationError",
    "PipelineError",
    "RequestBody",
    "RequestBodyConsumedError",
    "RequestBodyTooLargeError",
    "RoutePattern",
    "RouteTemplateError",
    "SVG",
    "TEXT",
    "Unit",
    "UnitError",
    "UpstreamError",
    "XML",
    "chain_all",
    "chain_until_response",
    "if_basic_auth",
    "if_content_type",
    "if_hostname",
    "invoke",
    "route",
    "run",
]
