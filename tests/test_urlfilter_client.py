from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer
import pytest

from adapters.urlfilter_client import UrlFilterClient
from core.config import LivenessConfig
from core.host_cache import HostLookupCache
from core.liveness import DeadDomainResolver, LivenessServiceError
from fakes import FakeLookup, FakeSleep, liveness_payload

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


async def _with_client(handler: Handler, scenario: Callable[[UrlFilterClient], Awaitable[object]]) -> object:
    app = web.Application()
    app.router.add_get("/v2/checkDomains", handler)
    server = TestServer(app)
    await server.start_server()
    try:
        async with aiohttp.ClientSession() as session:
            client = UrlFilterClient(session, str(server.make_url("/v2/checkDomains")))
            return await scenario(client)
    finally:
        await server.close()


def test_check_domains_sends_filter_and_domains() -> None:
    seen: list[list[tuple[str, str]]] = []

    async def handler(request: web.Request) -> web.Response:
        seen.append(list(request.query.items()))
        domains = request.query.getall("domain")
        return web.json_response(liveness_payload(domains, {"example.dead"}))

    response = asyncio.run(
        _with_client(handler, lambda client: client.check_domains(["example.org", "example.dead"]))
    )

    assert seen == [[("filter", "none"), ("domain", "example.org"), ("domain", "example.dead")]]
    assert response.ok
    assert response.payload["example.dead"]["info"]["registered_domain_used_last_24_hours"] is False


def test_check_domains_reports_retry_after() -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(status=429, headers={"Retry-After": "3"})

    response = asyncio.run(_with_client(handler, lambda client: client.check_domains(["example.org"])))

    assert response.status == 429
    assert response.retry_after == "3"
    assert not response.ok


def test_plain_text_json_is_accepted() -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(text='{"example.org": {}}', content_type="text/plain")

    response = asyncio.run(_with_client(handler, lambda client: client.check_domains(["example.org"])))

    assert response.payload == {"example.org": {}}


@pytest.mark.parametrize("body", ["not json", "[1, 2, 3]"])
def test_unusable_body_raises(body: str) -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(text=body, content_type="application/json")

    with pytest.raises(LivenessServiceError):
        asyncio.run(_with_client(handler, lambda client: client.check_domains(["example.org"])))


def test_resolver_retries_over_http() -> None:
    attempts = 0

    async def handler(request: web.Request) -> web.Response:
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            return web.Response(status=503, headers={"Retry-After": "1"})
        return web.json_response(liveness_payload(request.query.getall("domain"), {"example.dead"}))

    sleep = FakeSleep()

    async def scenario(client: UrlFilterClient) -> object:
        resolver = DeadDomainResolver(client, HostLookupCache(FakeLookup()), LivenessConfig(), sleep=sleep)
        return await resolver.resolve(["example.org", "example.dead"])

    dead = asyncio.run(_with_client(handler, scenario))

    assert dead == ["example.dead"]
    assert attempts == 2
    assert sleep.delays == [1.0]
