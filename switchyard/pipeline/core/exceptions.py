"""
Custom exception classes.

Construction-time errors are fatal and raised before any request is served.
Per-request unit failures propagate through the combinators untouched and
are converted to a generic server error by the runner.
"""

from typing import Optional


class PipelineError(Exception):
    """Base exception class for the pipeline."""

    pass


class PipelineConfigurationError(PipelineError, ValueError):
    """Raised when a pipeline or unit is constructed with invalid configuration."""

    pass


class RouteTemplateError(PipelineConfigurationError):
    """Raised when a route template cannot be parsed."""

    def __init__(self, template: str, reason: str):
        self.template = template
        self.reason = reason
        super().__init__(f"Invalid route template {template!r}: {reason}")


class HeadersFrozenError(PipelineError, TypeError):
    """Raised when a read-only header collection is mutated."""

    pass


class UnitError(PipelineError):
    """Base class for failures raised while a unit handles a request."""

    pass


class RequestBodyConsumedError(UnitError):
    """Raised when the request body is read a second time."""

    def __init__(self):
        super().__init__("Request body has already been consumed")


class RequestBodyTooLargeError(UnitError):
    """Raised when the request body exceeds the configured limit."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Request body exceeds {limit} bytes")


class InvalidUnitResultError(UnitError):
    """Raised when a unit or route factory returns something unusable."""

    def __init__(self, unit: object, result: object):
        self.unit = unit
        self.result = result
        name = getattr(unit, "__qualname__", repr(unit))
        super().__init__(f"{name} returned an unusable {type(result).__name__}")


class UpstreamError(UnitError):
    """Raised when a proxied upstream request fails."""

    def __init__(self, target: str, cause: Optional[Exception] = None):
        self.target = target
        self.cause = cause
        super().__init__(f"Upstream request to {target} failed: {cause}")
