import pytest

from switchyard.pipeline.core.exceptions import (
    HeadersFrozenError,
    RequestBodyConsumedError,
    RequestBodyTooLargeError,
)
from switchyard.pipeline.models import Context, Headers, RequestBody, parse_hostname


async def chunks(*parts):
    for part in parts:
        yield part


class ClosingStream:
    def __init__(self, *parts):
        self.parts = list(parts)
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.parts:
            raise StopAsyncIteration
        return self.parts.pop(0)

    async def aclose(self):
        self.closed = True


def test_headers_are_case_insensitive_and_ordered():
    headers = Headers([("X-B", "1"), ("x-a", "2"), ("X-b", "3")])

    assert list(headers) == ["x-b", "x-a"]
    assert headers.get("X-B") == "1"
    assert headers.get_all("x-b") == ["1", "3"]
    assert "X-A" in headers
    assert len(headers) == 2


def test_headers_set_replaces_every_value_in_place():
    headers = Headers([("a", "1"), ("b", "2"), ("a", "3")])

    headers.set("A", "9")

    assert headers.items() == [("a", "9"), ("b", "2")]


def test_headers_to_dict_keeps_cookies_separate():
    headers = Headers()
    headers.append("vary", "origin")
    headers.append("vary", "accept-encoding")
    headers.append("set-cookie", "a=1")
    headers.append("set-cookie", "b=2")

    assert headers.to_dict() == {"vary": "origin, accept-encoding", "set-cookie": ["a=1", "b=2"]}


def test_headers_reject_invalid_names():
    with pytest.raises(ValueError):
        Headers().set("bad name", "x")


def test_request_headers_are_frozen():
    context = Context(headers={"host": "example.com"})

    with pytest.raises(HeadersFrozenError):
        context.request_headers.set("host", "evil.com")
    with pytest.raises(HeadersFrozenError):
        context.request_headers.delete("host")
    assert context.request_headers.get("host") == "example.com"


def test_copy_of_frozen_headers_is_writable():
    frozen = Headers({"a": "1"}, frozen=True)

    copy = frozen.copy()
    copy.set("a", "2")

    assert frozen.get("a") == "1"
    assert copy.get("a") == "2"


@pytest.mark.parametrize(
    "attribute",
    ["request_method", "request_path", "request_query", "request_hostname", "request_headers", "request_id"],
)
def test_request_facet_is_read_only(attribute):
    context = Context()

    with pytest.raises(AttributeError):
        setattr(context, attribute, "changed")


def test_defaults():
    context = Context()

    assert context.request_method == "GET"
    assert context.request_path == "/"
    assert context.response_status is None
    assert context.response_body is None
    assert context.responded is False
    assert context.request_id


def test_request_ids_are_unique():
    assert Context().request_id != Context().request_id


@pytest.mark.parametrize(
    "host,expected",
    [
        ("Foo.localhost:8080", "foo.localhost"),
        ("example.com", "example.com"),
        ("[::1]:443", "[::1]"),
        ("", ""),
        (None, ""),
    ],
)
def test_parse_hostname(host, expected):
    assert parse_hostname(host) == expected


def test_responded_turns_true_on_status():
    context = Context()

    context.response_status = 204

    assert context.responded is True


def test_responded_turns_true_on_body():
    context = Context()

    context.response_body = "hello"

    assert context.responded is True
    assert context.response_status is None


def test_responded_never_reverts():
    context = Context()
    context.respond(200, "x")

    context.response_status = None
    context.response_body = None

    assert context.responded is True


def test_response_headers_alone_do_not_respond():
    context = Context()

    context.response_headers.set("x-a", "1")

    assert context.responded is False


@pytest.mark.parametrize("status", [99, 1000, -1])
def test_invalid_status_is_rejected(status):
    with pytest.raises(ValueError):
        Context().response_status = status


def test_respond_json_sets_content_type():
    context = Context().respond_json(201, {"ok": True})

    assert context.response_status == 201
    assert context.response_body == '{"ok":true}'
    assert context.response_headers.get("content-type") == "application/json; charset=utf-8"


@pytest.mark.asyncio
async def test_body_is_read_once():
    body = RequestBody(b"payload")

    assert await body.read() == b"payload"
    with pytest.raises(RequestBodyConsumedError):
        await body.read()


@pytest.mark.asyncio
async def test_body_iteration_consumes_the_stream():
    body = RequestBody(chunks(b"a", b"", b"b"))

    received = [chunk async for chunk in body]

    assert received == [b"a", b"b"]
    assert body.consumed is True
    with pytest.raises(RequestBodyConsumedError):
        await body.text()


@pytest.mark.asyncio
async def test_body_json():
    assert await RequestBody(b'{"a": 1}').json() == {"a": 1}


@pytest.mark.asyncio
async def test_empty_body_reads_as_empty_bytes():
    assert await RequestBody().read() == b""


@pytest.mark.asyncio
async def test_body_limit_is_enforced_and_stream_closed():
    stream = ClosingStream(b"12345", b"67890")
    body = RequestBody(stream, limit=8)

    with pytest.raises(RequestBodyTooLargeError) as exc_info:
        await body.read()

    assert exc_info.value.limit == 8
    assert stream.closed is True


@pytest.mark.asyncio
async def test_closed_body_cannot_be_read():
    stream = ClosingStream(b"data")
    body = RequestBody(stream)

    await body.aclose()
    await body.aclose()

    assert stream.closed is True
    with pytest.raises(RequestBodyConsumedError):
        await body.read()


@pytest.mark.asyncio
async def test_context_aclose_releases_both_bodies():
    request_stream = ClosingStream(b"in")
    response_stream = ClosingStream(b"out")
    context = Context("POST", "/", body=request_stream)
    context.respond(200, response_stream)

    await context.aclose()

    assert request_stream.closed is True
    assert response_stream.closed is True
