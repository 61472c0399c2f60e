"""
Where: switchyard/pipeline/middlewares/static.py
What: Units serving files and directory listings from disk.
Why: Keep file I/O (aiofiles) out of the core while giving the pipeline a
     streaming, traversal-safe file source.
"""

import html
import logging
import mimetypes
import os
from email.utils import formatdate
from pathlib import Path
from typing import AsyncIterator, Optional
from urllib.parse import quote, unquote

import aiofiles

from ..core.combinators import Unit
from ..core.exceptions import PipelineConfigurationError
from ..models.context import Context

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
TEXT_TYPES = {"application/javascript", "application/json", "image/svg+xml", "application/xml"}


def guess_content_type(path: Path) -> str:
    content_type, _ = mimetypes.guess_type(path.name)
    if content_type is None:
        return "application/octet-stream"
    if content_type.startswith("text/") or content_type in TEXT_TYPES:
        return f"{content_type}; charset=utf-8"
    return content_type


async def stream_file(path: Path, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield the file in chunks; the handle is closed on every exit path."""
    async with aiofiles.open(path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            yield chunk


def _resolve_within(root: Path, request_path: str) -> Optional[Path]:
    relative = unquote(request_path).lstrip("/")
    if "\x00" in relative:
        return None
    candidate = (root / relative).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    return candidate


def _check_root(name: str, root: str) -> Path:
    resolved = Path(root).resolve()
    if not resolved.is_dir():
        raise PipelineConfigurationError(f"{name}: root {root!r} is not a directory")
    return resolved


def _respond_with_file(context: Context, path: Path) -> Context:
    stat = path.stat()
    headers = context.response_headers
    headers.set("content-type", guess_content_type(path))
    headers.set("content-length", stat.st_size)
    headers.set("last-modified", formatdate(stat.st_mtime, usegmt=True))
    context.response_status = 200
    if context.request_method != "HEAD":
        context.response_body = stream_file(path)
    return context


def send_file(path: str) -> Unit:
    """Respond with a fixed file, whatever the request path."""
    file_path = Path(path)

    async def send_file_unit(context: Context) -> Context:
        resolved = file_path.resolve()
        if not resolved.is_file():
            logger.warning("send_file: %s is not a file", resolved)
            return context
        return _respond_with_file(context, resolved)

    return send_file_unit


def serve_static_file(root: str, *, index_file: Optional[str] = "index.html") -> Unit:
    """
    Serve the file under ``root`` that the request path names.

    Only GET and HEAD are answered. Paths escaping ``root`` and missing files
    pass through unresponded. A directory is served through its ``index_file``
    when present.
    """
    root_path = _check_root("serve_static_file", root)

    async def serve_static_file_unit(context: Context) -> Context:
        if context.request_method not in ("GET", "HEAD"):
            return context
        target = _resolve_within(root_path, context.request_path)
        if target is None:
            logger.info("Rejected path outside static root", extra={"path": context.request_path})
            return context
        if target.is_dir() and index_file:
            target = target / index_file
        if not target.is_file():
            return context
        return _respond_with_file(context, target)

    return serve_static_file_unit


def _render_listing(request_path: str, entries) -> str:
    base = request_path if request_path.endswith("/") else request_path + "/"
    title = html.escape(unquote(base))
    rows = []
    if base != "/":
        rows.append('<li><a href="../">../</a></li>')
    for entry in entries:
        name = entry.name + ("/" if entry.is_dir() else "")
        rows.append(f'<li><a href="{quote(base + name)}">{html.escape(name)}</a></li>')
    return (
        "<!DOCTYPE html>\n"
        f"<html><head><meta charset=\"utf-8\"><title>Index of {title}</title></head>\n"
        f"<body><h1>Index of {title}</h1>\n<ul>\n" + "\n".join(rows) + "\n</ul></body></html>\n"
    )


def serve_directory_index(root: str, *, show_hidden: bool = False) -> Unit:
    """Respond with an HTML listing for directories under ``root``."""
    root_path = _check_root("serve_directory_index", root)

    async def serve_directory_index_unit(context: Context) -> Context:
        if context.request_method not in ("GET", "HEAD"):
            return context
        target = _resolve_within(root_path, context.request_path)
        if target is None or not target.is_dir():
            return context

        with os.scandir(target) as it:
            entries = sorted(
                (e for e in it if show_hidden or not e.name.startswith(".")),
                key=lambda e: (not e.is_dir(), e.name.lower()),
            )
        body = _render_listing(context.request_path, entries)
        context.respond(200, body if context.request_method != "HEAD" else None, "text/html; charset=utf-8")
        return context

    return serve_directory_index_unit
