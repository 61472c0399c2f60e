"""
Where: switchyard/pipeline/core/conditionals.py
What: Predicate-gated wrappers around a unit (hostname, content type, basic
      auth, route).
Why: Express dispatch decisions through the responded flag instead of
     exceptions, so non-matching requests simply pass through.
"""

import base64
import binascii
import logging
import secrets
from typing import Callable, Collection, Mapping, Union

from ..models.context import Context
from .combinators import INSPECTS_RESPONSE_ATTR, Unit, invoke
from .exceptions import InvalidUnitResultError, PipelineConfigurationError
from .route_pattern import RoutePattern

logger = logging.getLogger("switchyard.pipeline")

HTML = "text/html"
CSS = "text/css"
JAVASCRIPT = "text/javascript"
JSON = "application/json"
TEXT = "text/plain"
XML = "application/xml"
SVG = "image/svg+xml"

# Legacy JavaScript media types are treated as text/javascript.
_CONTENT_TYPE_ALIASES = {
    "application/javascript": JAVASCRIPT,
    "application/x-javascript": JAVASCRIPT,
}

RouteFactory = Callable[[Mapping[str, str]], Unit]


def _require_unit(name: str, unit: Unit) -> None:
    if not callable(unit):
        raise PipelineConfigurationError(f"{name}: inner unit is not callable")


def _media_type(value: str) -> str:
    media_type = value.split(";", 1)[0].strip().lower()
    return _CONTENT_TYPE_ALIASES.get(media_type, media_type)


def if_hostname(hostname: str, unit: Unit) -> Unit:
    """Delegate to ``unit`` only when the request hostname equals ``hostname``."""
    if not hostname or not hostname.strip():
        raise PipelineConfigurationError("if_hostname: hostname must not be empty")
    _require_unit("if_hostname", unit)
    expected = hostname.strip().lower()

    async def if_hostname_unit(context: Context) -> Context:
        if context.request_hostname != expected:
            return context
        return await invoke(unit, context)

    return if_hostname_unit


def if_content_type(content_types: Union[str, Collection[str]], unit: Unit) -> Unit:
    """
    Delegate to ``unit`` only when the response content type is one of ``content_types``.

    Reads the response facet, so it must come after the unit that sets the
    response, typically inside a chain_all post-processing stage.
    """
    if isinstance(content_types, str):
        content_types = [content_types]
    expected = {_media_type(content_type) for content_type in content_types}
    if not expected or "" in expected:
        raise PipelineConfigurationError("if_content_type: at least one content type is required")
    _require_unit("if_content_type", unit)

    async def if_content_type_unit(context: Context) -> Context:
        content_type = context.response_headers.get("content-type")
        if content_type is None or _media_type(content_type) not in expected:
            return context
        return await invoke(unit, context)

    setattr(if_content_type_unit, INSPECTS_RESPONSE_ATTR, True)
    return if_content_type_unit


def _credentials_match(header: str, username: bytes, password: bytes) -> bool:
    scheme, _, encoded = header.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return False
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError):
        return False
    given_user, sep, given_pass = decoded.partition(b":")
    if not sep:
        return False
    # Evaluate both comparisons so timing does not reveal which part failed.
    user_ok = secrets.compare_digest(given_user, username)
    pass_ok = secrets.compare_digest(given_pass, password)
    return user_ok and pass_ok


def if_basic_auth(username: str, password: str, unit: Unit, *, realm: str = "Restricted") -> Unit:
    """
    Guard ``unit`` with HTTP Basic authentication.

    Missing, malformed, or wrong credentials answer 401 with a
    ``www-authenticate`` challenge and never reach ``unit``.
    """
    if not username:
        raise PipelineConfigurationError("if_basic_auth: username must not be empty")
    if ":" in username:
        raise PipelineConfigurationError("if_basic_auth: username must not contain ':'")
    if '"' in realm:
        raise PipelineConfigurationError("if_basic_auth: realm must not contain '\"'")
    _require_unit("if_basic_auth", unit)
    expected_user = username.encode("utf-8")
    expected_pass = password.encode("utf-8")
    challenge = f'Basic realm="{realm}", charset="UTF-8"'

    async def if_basic_auth_unit(context: Context) -> Context:
        header = context.request_headers.get("authorization")
        if header and _credentials_match(header, expected_user, expected_pass):
            return await invoke(unit, context)

        logger.info(
            "Basic auth rejected",
            extra={"path": context.request_path, "credentials_present": bool(header)},
        )
        context.response_headers.set("www-authenticate", challenge)
        context.respond(401, "Unauthorized", "text/plain; charset=utf-8")
        return context

    return if_basic_auth_unit


def route(method: Union[str, Collection[str]], template: str, factory: RouteFactory) -> Unit:
    """
    Dispatch to the unit produced by ``factory`` when method and path match.

    ``factory`` receives the extracted parameters and returns the unit to run.
    ``method`` may be a single method, a collection of methods, or "*".
    """
    pattern = RoutePattern.parse(template)
    if isinstance(method, str):
        methods = {method.upper()}
    else:
        methods = {m.upper() for m in method}
    if not methods or "" in methods:
        raise PipelineConfigurationError(f"route {template}: method must not be empty")
    any_method = "*" in methods
    if not callable(factory):
        raise PipelineConfigurationError(f"route {template}: factory is not callable")

    async def route_unit(context: Context) -> Context:
        if not any_method and context.request_method not in methods:
            return context
        params = pattern.match(context.request_path)
        if params is None:
            return context

        context.state["route_params"] = params
        context.state["route_template"] = pattern.template
        unit = factory(params)
        if not callable(unit):
            raise InvalidUnitResultError(factory, unit)
        return await invoke(unit, context)

    route_unit.pattern = pattern
    return route_unit
