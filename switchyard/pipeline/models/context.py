"""
Per-request context model.

Encapsulates the request facet (read-only) and the response facet (mutable)
threaded through the pipeline. This model decouples units from the transport
that produced the request.
"""

import json
from typing import Any, Dict, Optional, Tuple, Union

from switchyard.common.core.request_context import new_request_id

from .body import BodySource, RequestBody
from .headers import HeaderItems, Headers
from .response_body import ResponseBody, close_body


def parse_hostname(host: Optional[str]) -> str:
    """
    Extract the hostname from a Host header value.

    Example: "Foo.localhost:8080" -> "foo.localhost", "[::1]:443" -> "[::1]"
    """
    if not host:
        return ""
    host = host.strip().lower()
    if host.startswith("["):
        end = host.find("]")
        return host[: end + 1] if end != -1 else host
    return host.rsplit(":", 1)[0] if ":" in host else host


class Context:
    """
    Rich context representing one inbound request and the response being built.

    Request attributes are exposed as read-only properties; the request headers
    are frozen. ``responded`` turns true the first time a status or body is
    assigned and never turns false again.
    """

    def __init__(
        self,
        method: str = "GET",
        path: str = "/",
        *,
        query: str = "",
        headers: Optional[HeaderItems] = None,
        body: Union[RequestBody, BodySource] = None,
        http_version: str = "1.1",
        client: Optional[Tuple[str, int]] = None,
        request_id: Optional[str] = None,
    ):
        self._request_id = request_id or new_request_id()
        self._request_method = method.upper()
        self._request_path = path or "/"
        self._request_query = query
        self._request_headers = Headers(headers, frozen=True)
        self._request_hostname = parse_hostname(self._request_headers.get("host"))
        self._request_body = body if isinstance(body, RequestBody) else RequestBody(body)
        self._request_http_version = http_version
        self._client = client

        self._response_status: Optional[int] = None
        self._response_body: ResponseBody = None
        self._responded = False
        self._response_headers = Headers()
        self.state: Dict[str, Any] = {}

    # Identity and request facet

    @property
    def request_id(self) -> str:
        return self._request_id

    @property
    def request_method(self) -> str:
        return self._request_method

    @property
    def request_path(self) -> str:
        return self._request_path

    @property
    def request_query(self) -> str:
        return self._request_query

    @property
    def request_hostname(self) -> str:
        return self._request_hostname

    @property
    def request_headers(self) -> Headers:
        return self._request_headers

    @property
    def request_body(self) -> RequestBody:
        return self._request_body

    @property
    def request_http_version(self) -> str:
        return self._request_http_version

    @property
    def client(self) -> Optional[Tuple[str, int]]:
        return self._client

    # Response facet

    @property
    def response_headers(self) -> Headers:
        return self._response_headers

    @property
    def response_status(self) -> Optional[int]:
        return self._response_status

    @response_status.setter
    def response_status(self, status: Optional[int]) -> None:
        if status is not None:
            status = int(status)
            if not 100 <= status <= 999:
                raise ValueError(f"Invalid HTTP status code: {status}")
            self._responded = True
        self._response_status = status

    @property
    def response_body(self) -> ResponseBody:
        return self._response_body

    @response_body.setter
    def response_body(self, body: ResponseBody) -> None:
        if body is not None:
            self._responded = True
        self._response_body = body

    @property
    def responded(self) -> bool:
        return self._responded

    def respond(
        self,
        status: int,
        body: ResponseBody = None,
        content_type: Optional[str] = None,
    ) -> "Context":
        """Set status, body and optionally the content type in one step."""
        self.response_status = status
        if body is not None:
            self.response_body = body
        if content_type is not None:
            self.response_headers.set("content-type", content_type)
        return self

    def respond_json(self, status: int, payload: Any) -> "Context":
        body = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
        return self.respond(status, body, "application/json; charset=utf-8")

    async def aclose(self) -> None:
        """Release the request body and any closable response stream."""
        await self._request_body.aclose()
        await close_body(self._response_body)

    def __repr__(self) -> str:
        return (
            f"<Context {self._request_id} {self._request_method} {self._request_path} "
            f"status={self._response_status}>"
        )
