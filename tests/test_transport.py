from __future__ import annotations

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer, unused_port

from careerforge._constants import USER_AGENT
from careerforge._transport import AiohttpTransport


def _app() -> web.Application:
    async def save(request: web.Request) -> web.Response:
        payload = await request.json()
        return web.json_response(
            {
                "echo": payload,
                "userAgent": request.headers.get("User-Agent"),
                "auth": request.headers.get("Authorization"),
            },
            status=503,
        )

    async def health(_request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    app = web.Application()
    app.router.add_post("/api/portfolio/save", save)
    app.router.add_get("/api/health", health)
    return app


@pytest.mark.asyncio
async def test_error_status_is_a_response_not_an_exception() -> None:
    async with TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = AiohttpTransport(session)

        response = await transport.send(
            "POST",
            str(server.make_url("/api/portfolio/save")),
            headers={"Authorization": "Bearer abc", "Content-Type": "application/json"},
            body='{"projects":[1]}',
            timeout=5.0,
        )

    assert response.status == 503
    assert response.is_server_error
    body = response.json_body()
    assert body["echo"] == {"projects": [1]}
    assert body["userAgent"] == USER_AGENT
    assert body["auth"] == "Bearer abc"


@pytest.mark.asyncio
async def test_success_response_carries_body_and_url() -> None:
    async with TestServer(_app()) as server, aiohttp.ClientSession() as session:
        url = str(server.make_url("/api/health"))

        response = await AiohttpTransport(session).send("GET", url, headers={}, body=None, timeout=5.0)

    assert response.ok
    assert response.url == url
    assert response.json_body() == {"status": "ok"}


@pytest.mark.asyncio
async def test_refused_connection_raises_client_connection_error() -> None:
    async with aiohttp.ClientSession() as session:
        transport = AiohttpTransport(session)

        with pytest.raises(aiohttp.ClientConnectionError):
            await transport.send(
                "GET",
                f"http://127.0.0.1:{unused_port()}/api/health",
                headers={},
                body=None,
                timeout=5.0,
            )
