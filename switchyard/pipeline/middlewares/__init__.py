"""
Reference units.

Each factory returns a unit conforming to the Context contract; none of them
is needed by the core combinators.
"""

from .access_log import log_request
from .cors import cors
from .headers import (
    append_header,
    cache_control,
    keep_alive,
    link_preload,
    request_id,
    set_cookie,
    set_header,
)
from .proxy import Proxy, proxy
from .responses import not_found, redirect, respond, send_json, send_text
from .security import (
    content_security_policy,
    content_type_options,
    frame_options,
    permissions_policy,
    referrer_policy,
    strict_transport_security,
    xss_protection,
)
from .static import send_file, serve_directory_index, serve_static_file
from .timing import timeout
from .transforms import (
    compress_with_brotli,
    compress_with_deflate,
    compress_with_gzip,
    not_modified,
    transform_string,
)

__all__ = [
    "Proxy",
    "append_header",
    "cache_control",
    "compress_with_brotli",
    "compress_with_deflate",
    "compress_with_gzip",
    "content_security_policy",
    "content_type_options",
    "cors",
    "frame_options",
    "keep_alive",
    "link_preload",
    "log_request",
    "not_found",
    "not_modified",
    "permissions_policy",
    "proxy",
    "redirect",
    "referrer_policy",
    "request_id",
    "respond",
    "send_file",
    "send_json",
    "send_text",
    "serve_directory_index",
    "serve_static_file",
    "set_cookie",
    "set_header",
    "strict_transport_security",
    "timeout",
    "transform_string",
    "xss_protection",
]
