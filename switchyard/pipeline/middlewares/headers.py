"""
Units that add response headers.

None of them respond; they are meant for chain_all stages and run whether or
not a response exists yet.
"""

from http.cookies import CookieError, SimpleCookie
from typing import Dict, Iterable, List, Mapping, Optional, Union

from ..core.combinators import Unit
from ..core.exceptions import PipelineConfigurationError
from ..models.context import Context

DirectiveValue = Union[bool, int, str, None]

SAME_SITE_VALUES = {"strict", "lax", "none"}

# Request destinations accepted by rel=preload.
PRELOAD_DESTINATIONS = {
    "audio",
    "document",
    "embed",
    "fetch",
    "font",
    "image",
    "object",
    "script",
    "style",
    "track",
    "video",
    "worker",
}


def render_directives(directives: Mapping[str, DirectiveValue], separator: str = ", ") -> str:
    """
    Render a directive mapping as a header value.

    Example: {"max-age": 60, "public": True, "no-store": False} -> "max-age=60, public"
    """
    parts = []
    for name, value in directives.items():
        if value is None or value is False:
            continue
        if value is True:
            parts.append(name)
        else:
            parts.append(f"{name}={value}")
    return separator.join(parts)


def set_header(name: str, value: str) -> Unit:
    async def set_header_unit(context: Context) -> Context:
        context.response_headers.set(name, value)
        return context

    return set_header_unit


def append_header(name: str, value: str) -> Unit:
    async def append_header_unit(context: Context) -> Context:
        context.response_headers.append(name, value)
        return context

    return append_header_unit


def cache_control(directives: Mapping[str, DirectiveValue]) -> Unit:
    value = render_directives(directives)
    if not value:
        raise PipelineConfigurationError("cache_control: no directive enabled")
    return set_header("cache-control", value)


def set_cookie(
    name: str,
    value: str,
    *,
    max_age: Optional[int] = None,
    expires: Optional[str] = None,
    domain: Optional[str] = None,
    path: Optional[str] = "/",
    secure: bool = False,
    http_only: bool = False,
    same_site: Optional[str] = "lax",
) -> Unit:
    cookie: SimpleCookie = SimpleCookie()
    try:
        cookie[name] = value
    except CookieError as exc:
        raise PipelineConfigurationError(f"set_cookie: invalid cookie {name!r}: {exc}") from exc
    morsel = cookie[name]
    if max_age is not None:
        morsel["max-age"] = str(max_age)
    if expires is not None:
        morsel["expires"] = expires
    if domain is not None:
        morsel["domain"] = domain
    if path is not None:
        morsel["path"] = path
    if secure:
        morsel["secure"] = True
    if http_only:
        morsel["httponly"] = True
    if same_site is not None:
        if same_site.lower() not in SAME_SITE_VALUES:
            raise PipelineConfigurationError(f"set_cookie: invalid same_site {same_site!r}")
        morsel["samesite"] = same_site.capitalize()
    header_value = morsel.OutputString()
    return append_header("set-cookie", header_value)


def request_id(header: str = "x-request-id") -> Unit:
    """Expose the Context's request identifier as a response header."""

    async def request_id_unit(context: Context) -> Context:
        context.response_headers.set(header, context.request_id)
        return context

    return request_id_unit


def keep_alive(enabled: bool = True, timeout: Optional[int] = None, max_requests: Optional[int] = None) -> Unit:
    """
    Negotiate HTTP/1.x connection persistence.

    HTTP/2 and later forbid connection-specific headers, so those requests
    pass through untouched.
    """
    if timeout is not None and timeout <= 0:
        raise PipelineConfigurationError("keep_alive: timeout must be positive")
    if max_requests is not None and max_requests <= 0:
        raise PipelineConfigurationError("keep_alive: max_requests must be positive")
    params = render_directives({"timeout": timeout, "max": max_requests})

    async def keep_alive_unit(context: Context) -> Context:
        if not context.request_http_version.startswith("1"):
            return context
        requested = (context.request_headers.get("connection") or "").lower()
        if not enabled or "close" in requested:
            context.response_headers.set("connection", "close")
            return context
        context.response_headers.set("connection", "keep-alive")
        if params:
            context.response_headers.set("keep-alive", params)
        return context

    return keep_alive_unit


def _preload_link(path: str, resource: Mapping[str, object]) -> str:
    href = resource.get("href")
    destination = resource.get("as")
    if not isinstance(href, str) or not href or any(c in href for c in "<>\r\n"):
        raise PipelineConfigurationError(f"link_preload: invalid href {href!r} for {path}")
    if destination not in PRELOAD_DESTINATIONS:
        raise PipelineConfigurationError(f"link_preload: unsupported as={destination!r} for {path}")
    link = f"<{href}>; rel=preload; as={destination}"
    if resource.get("type"):
        link += f'; type="{resource["type"]}"'
    crossorigin = resource.get("crossorigin")
    if crossorigin is True:
        link += "; crossorigin"
    elif crossorigin:
        link += f"; crossorigin={crossorigin}"
    return link


def link_preload(manifest: Mapping[str, Iterable[Mapping[str, object]]]) -> Unit:
    """
    Announce subresources of a page with ``link: <href>; rel=preload`` headers.

    ``manifest`` maps a request path to its resources, each a mapping with
    ``href`` and ``as`` and optionally ``type`` and ``crossorigin``. A
    manifest wrapped as ``{"resources": {...}}`` is accepted too.

    Example: {"/index.html": [{"href": "/styles.css", "as": "style"}]}
        -> link: </styles.css>; rel=preload; as=style
    """
    resources = manifest.get("resources", manifest)
    links: Dict[str, List[str]] = {}
    for path, entries in resources.items():
        if not isinstance(path, str) or not path.startswith("/"):
            raise PipelineConfigurationError(f"link_preload: manifest path {path!r} must start with '/'")
        links[path] = [_preload_link(path, entry) for entry in entries]

    async def link_preload_unit(context: Context) -> Context:
        if context.request_method not in ("GET", "HEAD"):
            return context
        for link in links.get(context.request_path, ()):
            context.response_headers.append("link", link)
        return context

    return link_preload_unit
