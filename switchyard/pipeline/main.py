"""
Example pipeline server.

Assembles security headers, virtual hosts, routes, static files, content-type
post-processing, compression and access logging into one pipeline and serves
it with uvicorn.
"""

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .config import PipelineConfig, config
from .core.combinators import Unit, chain_all, chain_until_response
from .core.conditionals import HTML, JAVASCRIPT, if_basic_auth, if_content_type, if_hostname, route
from .core.logging_config import setup_logging
from .middlewares import (
    cache_control,
    compress_with_brotli,
    compress_with_deflate,
    compress_with_gzip,
    content_security_policy,
    content_type_options,
    cors,
    frame_options,
    keep_alive,
    link_preload,
    log_request,
    not_found,
    not_modified,
    permissions_policy,
    proxy,
    redirect,
    referrer_policy,
    request_id,
    send_file,
    send_json,
    serve_directory_index,
    serve_static_file,
    set_cookie,
    strict_transport_security,
    transform_string,
    xss_protection,
)
from .models.context import Context
from .transport import create_app

logger = logging.getLogger("switchyard.main")

ONE_DAY_S = 24 * 60 * 60
ONE_YEAR_S = 365 * ONE_DAY_S

PRELOAD_MANIFEST = {
    "/public/index.html": [
        {"href": "/public/styles.css", "as": "style"},
        {"href": "/public/jquery.js", "as": "script"},
        {"href": "/public/image.gif?q=1", "as": "image"},
        {"href": "/public/image.jpg?q=1", "as": "image"},
        {"href": "/public/image.png?q=1", "as": "image"},
        {"href": "/public/image.svg?q=1", "as": "image"},
    ],
}

not_found_unit = not_found()


async def echo_request(context: Context) -> Context:
    """Describe the request back to the client; HEAD/OPTIONS fall back to 404."""
    if context.request_method in ("HEAD", "OPTIONS"):
        return await not_found_unit(context)
    return context.respond_json(
        200,
        {
            "requestId": context.request_id,
            "requestMethod": context.request_method,
            "requestPath": context.request_path,
            "requestHeaders": context.request_headers.to_dict(),
        },
    )


def greet_host(context: Context) -> Context:
    return context.respond_json(200, {"msg": f"Hello from {context.request_headers.get('host')}"})


def product_unit(params) -> Unit:
    async def product(context: Context) -> Context:
        context.response_headers.set("x-id", params["id"])
        return context.respond(204)

    return product


def book_unit(params) -> Unit:
    async def book(context: Context) -> Context:
        context.response_headers.set("x-title", params["title"])
        return context.respond(204)

    return book


async def to_uppercase(context: Context) -> Context:
    text = await context.request_body.text()
    return context.respond(200, text.upper(), "text/plain; charset=utf-8")


async def prepend_js_banner(body: str) -> str:
    return "// served through switchyard\n\n" + body


def build_pipeline(app_config: PipelineConfig, *, upstream=None) -> Unit:
    """
    Build the example pipeline.

    Args:
        app_config: configuration providing credentials, static root and header names
        upstream: unit serving github.localhost (a Proxy by default)
    """
    if upstream is None:
        upstream = proxy("https://github.com", timeout=app_config.PROXY_TIMEOUT)

    routing = chain_until_response(
        [
            if_hostname("github.localhost", upstream),
            if_hostname("foo.localhost", greet_host),
            if_hostname("bar.localhost", greet_host),
            route("GET", "/test", lambda _: send_file("./public/test/index.html")),
            route(
                "GET",
                "/secret",
                lambda _: if_basic_auth(
                    app_config.AUTH_USER,
                    app_config.AUTH_PASS,
                    send_json(200, {"secret": "Hello Admin"}),
                ),
            ),
            route("GET", "/products/:id", product_unit),
            route("GET", "/books/:title", book_unit),
            route("GET", "/go-home", lambda _: redirect(302, "/")),
            route("GET", "/not-found", lambda _: not_found_unit),
            route("POST", "/to-uppercase", lambda _: to_uppercase),
            serve_static_file(app_config.STATIC_ROOT),
            serve_directory_index(app_config.STATIC_ROOT),
            echo_request,
        ]
    )

    return chain_all(
        [
            link_preload(PRELOAD_MANIFEST),
            cors(
                "*",
                max_age=ONE_DAY_S,
                allow_methods=["GET", "POST"],
                expose_headers=["server"],
                allow_headers=["x-foo"],
            ),
            set_cookie("visit-24h", "true", max_age=ONE_DAY_S, http_only=True, secure=True),
            request_id(app_config.REQUEST_ID_HEADER),
            cache_control({"max-age": 10}),
            strict_transport_security(ONE_YEAR_S, include_subdomains=True),
            content_security_policy(
                {
                    "default-src": "none",
                    "script-src": ["self", "unsafe-inline"],
                    "style-src": ["self", "unsafe-inline"],
                    "media-src": ["self"],
                    "img-src": ["self", "images.example.com", "data:"],
                }
            ),
            permissions_policy(
                {
                    "accelerometer": [],
                    "midi": ["self"],
                    "usb": ["http://example.com"],
                    "camera": ["self", "http://example.com"],
                }
            ),
            referrer_policy("no-referrer"),
            xss_protection("block"),
            frame_options("DENY"),
            content_type_options(),
            routing,
            if_content_type(HTML, cache_control({"max-age": 60})),
            if_content_type(JAVASCRIPT, transform_string(prepend_js_banner)),
            keep_alive(True, timeout=30, max_requests=100),
            compress_with_brotli(5),
            compress_with_gzip(6),
            compress_with_deflate(6),
            not_modified(etag=True, last_modified=True),
            log_request(),
        ]
    )


def build_app(app_config: Optional[PipelineConfig] = None) -> FastAPI:
    app_config = app_config or config
    upstream = proxy("https://github.com", timeout=app_config.PROXY_TIMEOUT)
    pipeline = build_pipeline(app_config, upstream=upstream)
    return create_app(pipeline, app_config=app_config, closeables=[upstream])


def main() -> None:
    setup_logging()
    logger.info(
        "Serving example pipeline",
        extra={"host": config.BIND_HOST, "port": config.BIND_PORT},
    )
    # log_config=None keeps the handlers installed by setup_logging().
    uvicorn.run(build_app(), host=config.BIND_HOST, port=config.BIND_PORT, log_config=None)


if __name__ == "__main__":
    main()
