"""
Response post-processing units: string transforms, compression (brotli, gzip,
deflate), conditional requests.

All of them work on a response produced earlier in the same chain_all stage
and leave unresponded contexts alone.
"""

import hashlib
import inspect
import logging
import zlib
from email.utils import parsedate_to_datetime
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional, Protocol, Set, Union

import brotli

from ..core.combinators import Unit
from ..core.exceptions import PipelineConfigurationError
from ..models.context import Context
from ..models.response_body import ResponseBody, close_body, is_stream, iter_body, to_text

logger = logging.getLogger(__name__)

StringTransform = Callable[[str], Union[str, Awaitable[str]]]

# Content types that benefit from compression
COMPRESSIBLE_TYPES: Set[str] = {
    "application/json",
    "application/javascript",
    "application/xml",
    "application/xhtml+xml",
    "application/manifest+json",
    "image/svg+xml",
}

# zlib wbits per content-coding: gzip container, zlib container ("deflate" in HTTP).
_WBITS = {"gzip": 16 + zlib.MAX_WBITS, "deflate": zlib.MAX_WBITS}


def transform_string(transform: StringTransform) -> Unit:
    """Rewrite a text response body with ``transform`` (sync or async)."""

    async def transform_string_unit(context: Context) -> Context:
        if context.response_body is None or "content-encoding" in context.response_headers:
            return context
        text = await to_text(context.response_body)
        result = transform(text)
        if inspect.isawaitable(result):
            result = await result
        context.response_body = result
        context.response_headers.delete("content-length")
        return context

    return transform_string_unit


def parse_accept_encoding(header: Optional[str]) -> Dict[str, float]:
    """
    Parse an Accept-Encoding header into coding -> q-value.

    Example: "gzip;q=0.8, br" -> {"gzip": 0.8, "br": 1.0}
    """
    accepted: Dict[str, float] = {}
    if not header:
        return accepted
    for part in header.split(","):
        coding, _, params = part.strip().partition(";")
        coding = coding.strip().lower()
        if not coding:
            continue
        q = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                q = float(params[2:])
            except ValueError:
                q = 0.0
        accepted[coding] = q
    return accepted


def _accepts(header: Optional[str], coding: str) -> bool:
    accepted = parse_accept_encoding(header)
    if coding in accepted:
        return accepted[coding] > 0
    return accepted.get("*", 0) > 0


def _is_compressible(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type.startswith("text/") or media_type in COMPRESSIBLE_TYPES


class _Compressor(Protocol):
    def compress(self, data: bytes) -> bytes: ...

    def flush(self) -> bytes: ...


async def _compress_stream(body: ResponseBody, compressor: _Compressor) -> AsyncIterator[bytes]:
    async for chunk in iter_body(body):
        data = compressor.compress(chunk)
        if data:
            yield data
    yield compressor.flush()


class _BrotliCompressor:
    """Adapts brotli.Compressor to the zlib compressobj interface."""

    def __init__(self, quality: int):
        self._compressor = brotli.Compressor(quality=quality)

    def compress(self, data: bytes) -> bytes:
        return self._compressor.process(data)

    def flush(self) -> bytes:
        return self._compressor.finish()


def _add_vary(headers, token: str) -> None:
    present = {
        item.strip().lower() for value in headers.get_all("vary") for item in value.split(",")
    }
    if token not in present and "*" not in present:
        headers.append("vary", token)


def _compress_with(
    name: str,
    coding: str,
    level: int,
    max_level: int,
    min_size: int,
    make_compressor: Callable[[int], _Compressor],
) -> Unit:
    if not 0 <= level <= max_level:
        raise PipelineConfigurationError(f"{name}: level must be within 0..{max_level}")
    if min_size < 0:
        raise PipelineConfigurationError(f"{name}: min_size must be >= 0")

    async def compress_unit(context: Context) -> Context:
        body = context.response_body
        status = context.response_status or 200
        headers = context.response_headers
        if (
            body is None
            or status < 200
            or status in (204, 304)
            or "content-encoding" in headers
            or "no-transform" in (headers.get("cache-control") or "")
            or not _is_compressible(headers.get("content-type"))
            or not _accepts(context.request_headers.get("accept-encoding"), coding)
        ):
            return context

        if is_stream(body):
            context.response_body = _compress_stream(body, make_compressor(level))
        else:
            data = body.encode("utf-8") if isinstance(body, str) else body
            if len(data) < min_size:
                return context
            compressor = make_compressor(level)
            context.response_body = compressor.compress(data) + compressor.flush()

        headers.set("content-encoding", coding)
        headers.delete("content-length")
        _add_vary(headers, "accept-encoding")
        return context

    compress_unit.__name__ = compress_unit.__qualname__ = f"{name}_unit"
    return compress_unit


def _zlib_compressor(coding: str) -> Callable[[int], _Compressor]:
    return lambda level: zlib.compressobj(level, zlib.DEFLATED, _WBITS[coding])


def compress_with_brotli(level: int = 5, *, min_size: int = 256) -> Unit:
    """Brotli (``br``) content-coding; ``level`` is the brotli quality, 0..11."""
    return _compress_with("compress_with_brotli", "br", level, 11, min_size, _BrotliCompressor)


def compress_with_gzip(level: int = 6, *, min_size: int = 256) -> Unit:
    return _compress_with("compress_with_gzip", "gzip", level, 9, min_size, _zlib_compressor("gzip"))


def compress_with_deflate(level: int = 6, *, min_size: int = 256) -> Unit:
    return _compress_with(
        "compress_with_deflate", "deflate", level, 9, min_size, _zlib_compressor("deflate")
    )


def compute_etag(data: bytes) -> str:
    return f'W/"{hashlib.sha1(data).hexdigest()}"'


def _etag_matches(if_none_match: str, etag: str) -> bool:
    if if_none_match.strip() == "*":
        return True
    # Weak comparison: opaque tags compared without the W/ prefix.
    wanted = etag[2:] if etag.startswith("W/") else etag
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate == wanted:
            return True
    return False


def _not_modified_since(if_modified_since: str, last_modified: str) -> bool:
    try:
        return parsedate_to_datetime(last_modified) <= parsedate_to_datetime(if_modified_since)
    except (TypeError, ValueError):
        return False


def not_modified(etag: bool = True, last_modified: bool = False) -> Unit:
    """
    Answer conditional GET/HEAD requests with 304 when validators match.

    ``etag`` adds a weak ETag computed from in-memory bodies and honors
    ``if-none-match``; ``last_modified`` honors ``if-modified-since`` against a
    ``last-modified`` header set by an earlier unit.
    """

    async def not_modified_unit(context: Context) -> Context:
        if context.request_method not in ("GET", "HEAD") or context.response_status != 200:
            return context

        headers = context.response_headers
        body = context.response_body
        if etag and "etag" not in headers and isinstance(body, (bytes, str)):
            data = body.encode("utf-8") if isinstance(body, str) else body
            headers.set("etag", compute_etag(data))

        if_none_match = context.request_headers.get("if-none-match")
        current_etag = headers.get("etag")
        if if_none_match is not None:
            fresh = bool(etag and current_etag and _etag_matches(if_none_match, current_etag))
        else:
            if_modified_since = context.request_headers.get("if-modified-since")
            current_modified = headers.get("last-modified")
            fresh = bool(
                last_modified
                and if_modified_since
                and current_modified
                and _not_modified_since(if_modified_since, current_modified)
            )
        if not fresh:
            return context

        await close_body(body)
        context.response_status = 304
        context.response_body = None
        for name in ("content-length", "content-type", "content-encoding"):
            headers.delete(name)
        return context

    return not_modified_unit
