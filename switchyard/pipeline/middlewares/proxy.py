"""
Proxy unit.

Forwards the request to an upstream origin with httpx and relays the upstream
response as a streaming body.
"""

import logging
from typing import AsyncIterator, Optional

import httpx

from switchyard.common.core.http_client import HttpClientFactory

from ..config import config
from ..core.exceptions import PipelineConfigurationError, UpstreamError
from ..models.context import Context

logger = logging.getLogger("switchyard.proxy")

# RFC 9110 section 7.6.1 connection-specific headers.
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
}


def _forwardable(name: str, connection_tokens: set) -> bool:
    return name not in HOP_BY_HOP_HEADERS and name not in connection_tokens


def _connection_tokens(value: Optional[str]) -> set:
    return {token.strip().lower() for token in (value or "").split(",") if token.strip()}


async def _relay(response: httpx.Response) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_raw():
            yield chunk
    finally:
        await response.aclose()


class Proxy:
    """
    Unit forwarding every request it receives to ``target``.

    Args:
        target: upstream origin, e.g. "https://example.com"
        client: shared httpx.AsyncClient; one is created on first use otherwise
        timeout: upstream timeout in seconds
    """

    def __init__(
        self,
        target: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        url = httpx.URL(target)
        if url.scheme not in ("http", "https") or not url.host:
            raise PipelineConfigurationError(f"proxy: invalid target {target!r}")
        self.target = target.rstrip("/")
        self.timeout = timeout if timeout is not None else config.PROXY_TIMEOUT
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            factory = HttpClientFactory(config)
            self._client = factory.create_async_client(timeout=self.timeout)
        return self._client

    def build_url(self, context: Context) -> str:
        url = f"{self.target}{context.request_path}"
        if context.request_query:
            url = f"{url}?{context.request_query}"
        return url

    def build_headers(self, context: Context) -> list:
        tokens = _connection_tokens(context.request_headers.get("connection"))
        headers = [
            (name, value)
            for name, value in context.request_headers.items()
            if name != "host" and _forwardable(name, tokens)
        ]
        host = context.request_headers.get("host")
        if host:
            headers.append(("x-forwarded-host", host))
        if context.client:
            prior = context.request_headers.get("x-forwarded-for")
            client_ip = context.client[0]
            headers = [(n, v) for n, v in headers if n != "x-forwarded-for"]
            headers.append(("x-forwarded-for", f"{prior}, {client_ip}" if prior else client_ip))
        return headers

    async def __call__(self, context: Context) -> Context:
        url = self.build_url(context)
        has_body = (
            "content-length" in context.request_headers
            or "transfer-encoding" in context.request_headers
        )
        request = self.client.build_request(
            context.request_method,
            url,
            headers=self.build_headers(context),
            content=context.request_body if has_body else None,
            timeout=self.timeout,
        )

        try:
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as exc:
            logger.error(
                f"Upstream request failed: {exc}",
                extra={"upstream_url": url, "method": context.request_method},
            )
            raise UpstreamError(self.target, exc) from exc

        tokens = _connection_tokens(response.headers.get("connection"))
        for name, value in response.headers.multi_items():
            if _forwardable(name.lower(), tokens):
                context.response_headers.append(name, value)
        context.response_status = response.status_code
        if context.request_method == "HEAD":
            await response.aclose()
        else:
            context.response_body = _relay(response)

        logger.debug(
            "Proxied request",
            extra={"upstream_url": url, "status": response.status_code},
        )
        return context

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


def proxy(
    target: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> Proxy:
    return Proxy(target, client=client, timeout=timeout)
