"""
Helpers for the response body union: bytes, str, async byte stream, or None.
"""

from typing import AsyncIterable, AsyncIterator, Optional, Union

ResponseBody = Union[bytes, str, AsyncIterable[bytes], None]


def is_stream(body: ResponseBody) -> bool:
    return body is not None and not isinstance(body, (bytes, str))


async def iter_body(body: ResponseBody, encoding: str = "utf-8") -> AsyncIterator[bytes]:
    """Yield ``body`` as byte chunks, closing a stream body when done."""
    if body is None:
        return
    if isinstance(body, str):
        yield body.encode(encoding)
    elif isinstance(body, bytes):
        yield body
    else:
        try:
            async for chunk in body:
                yield chunk.encode(encoding) if isinstance(chunk, str) else bytes(chunk)
        finally:
            await close_body(body)


async def to_bytes(body: ResponseBody, encoding: str = "utf-8") -> Optional[bytes]:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode(encoding)
    return b"".join([chunk async for chunk in iter_body(body, encoding)])


async def to_text(body: ResponseBody, encoding: str = "utf-8") -> Optional[str]:
    if body is None or isinstance(body, str):
        return body
    data = await to_bytes(body, encoding)
    return data.decode(encoding)


async def close_body(body: ResponseBody) -> None:
    aclose = getattr(body, "aclose", None)
    if aclose is not None:
        await aclose()
