import httpx
import pytest
import pytest_asyncio
import respx

from switchyard.pipeline.core.exceptions import PipelineConfigurationError, UpstreamError
from switchyard.pipeline.middlewares import proxy
from switchyard.pipeline.models.response_body import to_bytes


@pytest_asyncio.fixture
async def client():
    async with httpx.AsyncClient() as client:
        yield client


def test_rejects_invalid_target():
    with pytest.raises(PipelineConfigurationError):
        proxy("ftp://example.com")
    with pytest.raises(PipelineConfigurationError):
        proxy("example.com")


def test_build_url_keeps_path_and_query(make_context):
    unit = proxy("https://upstream.example/")

    url = unit.build_url(make_context("GET", "/a/b", query="x=1"))

    assert url == "https://upstream.example/a/b?x=1"


def test_build_headers_drops_hop_by_hop(make_context):
    unit = proxy("https://upstream.example")
    context = make_context(
        headers=[
            ("host", "github.localhost:8080"),
            ("connection", "keep-alive, x-private"),
            ("keep-alive", "timeout=5"),
            ("x-private", "1"),
            ("accept", "text/html"),
            ("x-forwarded-for", "10.0.0.1"),
        ],
        client=("127.0.0.1", 5000),
    )

    headers = dict(unit.build_headers(context))

    assert headers == {
        "accept": "text/html",
        "x-forwarded-host": "github.localhost:8080",
        "x-forwarded-for": "10.0.0.1, 127.0.0.1",
    }


@pytest.mark.asyncio
@respx.mock
async def test_relays_upstream_response(client, make_context):
    route = respx.get("https://upstream.example/repo").mock(
        return_value=httpx.Response(
            200,
            headers=[("content-type", "text/html"), ("set-cookie", "a=1"), ("set-cookie", "b=2")],
            content=b"<html>repo</html>",
        )
    )
    unit = proxy("https://upstream.example", client=client)

    context = await unit(make_context("GET", "/repo", headers={"host": "github.localhost"}))

    assert route.called
    assert route.calls.last.request.headers["x-forwarded-host"] == "github.localhost"
    assert route.calls.last.request.headers["host"] == "upstream.example"
    assert context.response_status == 200
    assert context.response_headers.get_all("set-cookie") == ["a=1", "b=2"]
    assert await to_bytes(context.response_body) == b"<html>repo</html>"


@pytest.mark.asyncio
async def test_forwards_request_body(make_context):
    received = []

    async def handler(request: httpx.Request) -> httpx.Response:
        received.append(await request.aread())
        return httpx.Response(201)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        unit = proxy("https://upstream.example", client=client)
        context = await unit(
            make_context("POST", "/upload", headers={"content-length": "5"}, body=b"hello")
        )

    assert context.response_status == 201
    assert received == [b"hello"]


@pytest.mark.asyncio
@respx.mock
async def test_head_response_has_no_body(client, make_context):
    respx.head("https://upstream.example/").mock(return_value=httpx.Response(200))
    unit = proxy("https://upstream.example", client=client)

    context = await unit(make_context("HEAD", "/"))

    assert context.response_status == 200
    assert context.response_body is None


@pytest.mark.asyncio
@respx.mock
async def test_upstream_failure_raises(client, make_context):
    respx.get("https://upstream.example/").mock(side_effect=httpx.ConnectError("refused"))
    unit = proxy("https://upstream.example", client=client)

    with pytest.raises(UpstreamError) as exc_info:
        await unit(make_context())

    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_aclose_only_closes_owned_client(client):
    shared = proxy("https://upstream.example", client=client)
    owned = proxy("https://upstream.example")
    owned_client = owned.client

    await shared.aclose()
    await owned.aclose()

    assert client.is_closed is False
    assert owned_client.is_closed is True
