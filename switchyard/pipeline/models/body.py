"""
Single-consumption request body stream.
"""

import json
from typing import Any, AsyncIterable, AsyncIterator, Optional, Union

from ..core.exceptions import RequestBodyConsumedError, RequestBodyTooLargeError

BodySource = Union[bytes, AsyncIterable[bytes], None]


async def _single_chunk(data: bytes) -> AsyncIterator[bytes]:
    if data:
        yield data


class RequestBody:
    """
    Lazily consumed request body.

    The underlying stream can be read once, either whole via ``read()`` or
    chunk by chunk via ``async for``. A second attempt raises
    RequestBodyConsumedError instead of returning empty data.
    """

    def __init__(self, source: BodySource = None, *, limit: Optional[int] = None):
        if source is None:
            source = b""
        if isinstance(source, (bytes, bytearray, memoryview)):
            source = _single_chunk(bytes(source))
        self._source: AsyncIterable[bytes] = source
        self._limit = limit
        self._consumed = False
        self._closed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def closed(self) -> bool:
        return self._closed

    def _claim(self) -> None:
        if self._consumed or self._closed:
            raise RequestBodyConsumedError()
        self._consumed = True

    async def _chunks(self) -> AsyncIterator[bytes]:
        received = 0
        try:
            async for chunk in self._source:
                if not chunk:
                    continue
                received += len(chunk)
                if self._limit is not None and received > self._limit:
                    raise RequestBodyTooLargeError(self._limit)
                yield bytes(chunk)
        finally:
            await self.aclose()

    def __aiter__(self) -> AsyncIterator[bytes]:
        self._claim()
        return self._chunks()

    async def read(self) -> bytes:
        self._claim()
        return b"".join([chunk async for chunk in self._chunks()])

    async def text(self, encoding: str = "utf-8") -> str:
        return (await self.read()).decode(encoding)

    async def json(self) -> Any:
        return json.loads(await self.read())

    async def aclose(self) -> None:
        """Release the underlying stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()
