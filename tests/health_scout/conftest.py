"""
Shared fixtures for the health scout tests.

Provides a local aiohttp application that plays the role of a monitored
service, plus an HTTP session for the probes under test.
"""

import asyncio
from typing import AsyncIterator

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from health_scout.domain import Service

BEARER_TOKEN = "secret-token"
BASIC_USERNAME = "alice"
BASIC_PASSWORD = "s3cret"

HEALTH_DOCUMENT = {
    "status": "ok",
    "version": "1.2.3",
    "uptime": 3600,
    "ratio": 0.75,
    "checks": {"database": "up", "cache": "up"},
    "items": [{"healthy": True}, {"healthy": False}],
    "maintenance": None,
}


async def _health(request: web.Request) -> web.Response:
    return web.json_response(HEALTH_DOCUMENT)


async def _degraded(request: web.Request) -> web.Response:
    return web.json_response({"status": "degraded"})


async def _redirect(request: web.Request) -> web.Response:
    raise web.HTTPFound("/health")


async def _created(request: web.Request) -> web.Response:
    return web.Response(status=201, text="created")


async def _not_json(request: web.Request) -> web.Response:
    return web.Response(text="hello")


async def _slow(request: web.Request) -> web.Response:
    await asyncio.sleep(0.3)
    return web.Response(text="slow")


async def _bearer(request: web.Request) -> web.Response:
    if request.headers.get("Authorization") != f"Bearer {BEARER_TOKEN}":
        return web.Response(status=401)
    return web.Response(text="ok")


async def _basic(request: web.Request) -> web.Response:
    try:
        credentials = aiohttp.BasicAuth.decode(request.headers.get("Authorization", ""))
    except ValueError:
        return web.Response(status=401)
    if (credentials.login, credentials.password) != (BASIC_USERNAME, BASIC_PASSWORD):
        return web.Response(status=401)
    return web.Response(text="ok")


async def _headers(request: web.Request) -> web.Response:
    if request.headers.get("X-Custom-Header") != "custom-value":
        return web.Response(status=400)
    if request.headers.get("X-Request-ID") != "test-123":
        return web.Response(status=400)
    return web.Response(text="ok")


async def _echo_method(request: web.Request) -> web.Response:
    return web.json_response({"method": request.method})


def create_app() -> web.Application:
    """
    Builds the application standing in for a monitored service.

    Returns:
        web.Application: An app exposing health, auth and misbehaving routes.
    """
    app = web.Application()
    app.add_routes(
        [
            web.get("/health", _health),
            web.get("/degraded", _degraded),
            web.get("/redirect", _redirect),
            web.get("/created", _created),
            web.get("/not-json", _not_json),
            web.get("/slow", _slow),
            web.get("/bearer", _bearer),
            web.get("/basic", _basic),
            web.get("/headers", _headers),
            web.route("*", "/method", _echo_method),
        ]
    )
    return app


@pytest_asyncio.fixture
async def health_server() -> AsyncIterator[TestServer]:
    """
    Starts the monitored service on a free local port.

    Yields:
        TestServer: The running server. Closed after the test.
    """
    server = TestServer(create_app())
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def base_url(health_server: TestServer) -> str:
    """
    Returns the root URL of the running test server, without trailing slash.
    """
    return str(health_server.make_url("")).rstrip("/")


@pytest_asyncio.fixture
async def http_session() -> AsyncIterator[aiohttp.ClientSession]:
    """
    Creates the aiohttp session shared by HTTP-family probes.

    Yields:
        aiohttp.ClientSession: An open session. Closed after the test.
    """
    session = aiohttp.ClientSession()
    yield session
    await session.close()


@pytest.fixture
def sample_service() -> Service:
    """
    Creates a sample Service for tests that do not hit the network.

    Returns:
        Service: An http service with default settings.
    """
    return Service(name="example-api", target="https://api.example.com", health_path="/health")
