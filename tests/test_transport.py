from __future__ import annotations

import aiohttp
import pytest
from aiohttp import test_utils, web
from conftest import VIEWER_ID, make_config

from geopresence._transport import JsonTransport
from geopresence.discovery import DiscoveryClient
from geopresence.exceptions import GeoPresenceTransportError


def _app() -> web.Application:
    async def nearby(request: web.Request) -> web.Response:
        return web.json_response(
            {
                "nearbyUsers": [],
                "radius": request.query.get("radius"),
                "auth": request.headers.get("authorization"),
            }
        )

    async def submit(request: web.Request) -> web.Response:
        body = await request.json()
        return web.json_response({"success": True, "echo": body})

    async def broken(request: web.Request) -> web.Response:
        return web.Response(status=503, text="maintenance")

    async def garbage(request: web.Request) -> web.Response:
        return web.Response(status=200, text="<html>not json</html>")

    async def undecodable(request: web.Request) -> web.Response:
        return web.Response(
            status=200,
            body=b'{"nearbyUsers": ["\xff\xfe"]}',
            content_type="application/json",
            charset="utf-8",
        )

    app = web.Application()
    app.router.add_get("/api/location/nearby/me", nearby)
    app.router.add_post("/api/location/submit", submit)
    app.router.add_get("/broken", broken)
    app.router.add_get("/garbage", garbage)
    app.router.add_get("/undecodable", undecodable)
    app.router.add_get(f"/api/location/nearby/{VIEWER_ID}", undecodable)
    return app


@pytest.mark.asyncio
async def test_get_and_post_json() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        config = make_config(participant_id="me", base_url=str(server.make_url("/")), api_key="secret")
        transport = JsonTransport(config, session)

        nearby = await transport.get_json("/api/location/nearby/me", {"radius": "10"})
        echoed = await transport.post_json("/api/location/submit", {"publicKey": "me", "latitude": 1.0})

    assert nearby == {"nearbyUsers": [], "radius": "10", "auth": "Bearer secret"}
    assert echoed["echo"] == {"publicKey": "me", "latitude": 1.0}


@pytest.mark.asyncio
async def test_non_2xx_raises_with_status() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = JsonTransport(make_config(base_url=str(server.make_url("/"))), session)

        with pytest.raises(GeoPresenceTransportError) as excinfo:
            await transport.get_json("/broken")

    assert excinfo.value.status_code == 503
    assert excinfo.value.endpoint == "/broken"


@pytest.mark.asyncio
async def test_invalid_json_raises() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = JsonTransport(make_config(base_url=str(server.make_url("/"))), session)

        with pytest.raises(GeoPresenceTransportError, match="Invalid JSON"):
            await transport.get_json("/garbage")


@pytest.mark.asyncio
async def test_connection_failure_raises() -> None:
    async with aiohttp.ClientSession() as session:
        transport = JsonTransport(make_config(base_url="http://127.0.0.1:9", request_timeout=2.0), session)

        with pytest.raises(GeoPresenceTransportError):
            await transport.get_json("/anything")


@pytest.mark.asyncio
async def test_undecodable_body_raises() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = JsonTransport(make_config(base_url=str(server.make_url("/"))), session)

        with pytest.raises(GeoPresenceTransportError, match="Undecodable") as excinfo:
            await transport.get_json("/undecodable")

    assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)
    assert excinfo.value.endpoint == "/undecodable"


@pytest.mark.asyncio
async def test_discovery_degrades_on_undecodable_body() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        config = make_config(base_url=str(server.make_url("/")))
        client = DiscoveryClient(config, JsonTransport(config, session))

        result = await client.discover()

    assert result.stale is True
    assert result.participants == ()
