from __future__ import annotations

import aiohttp
import pytest
from fakes import FakeCareerForgeApi

from careerforge.discovery import ProbingServerDiscovery, StaticServerDiscovery
from careerforge.exceptions import NetworkUnreachableError
from careerforge.models import HttpResponse


class _PortMap:
    """Answers health probes only on the ports listed as alive."""

    def __init__(self, alive: dict[str, bytes]) -> None:
        self.alive = alive
        self.probed: list[str] = []

    async def send(self, method: str, url: str, **_kwargs: object) -> HttpResponse:
        self.probed.append(url)
        base = url.removesuffix("/api/health")
        if base not in self.alive:
            raise aiohttp.ClientConnectionError("refused")
        return HttpResponse(status=200, url=url, body=self.alive[base])


@pytest.mark.asyncio
async def test_static_discovery_never_moves() -> None:
    discovery = StaticServerDiscovery("http://localhost:5000/")

    assert discovery.current_url == "http://localhost:5000"
    assert await discovery.discover() == "http://localhost:5000"


@pytest.mark.asyncio
async def test_healthy_current_url_is_kept() -> None:
    transport = _PortMap({"http://localhost:5000": b'{"status":"ok"}', "http://localhost:5001": b"{}"})
    discovery = ProbingServerDiscovery(transport, "http://localhost:5000", ("http://localhost:5001",))

    assert await discovery.discover() == "http://localhost:5000"
    assert transport.probed == ["http://localhost:5000/api/health"]


@pytest.mark.asyncio
async def test_moves_to_first_healthy_candidate() -> None:
    transport = _PortMap({"http://localhost:5002": b'{"status":"ok"}'})
    discovery = ProbingServerDiscovery(
        transport,
        "http://localhost:5000",
        ("http://localhost:5001", "http://localhost:5002"),
    )

    assert await discovery.discover() == "http://localhost:5002"
    assert discovery.current_url == "http://localhost:5002"


@pytest.mark.asyncio
async def test_advertised_url_trusted_only_when_known() -> None:
    transport = _PortMap(
        {
            "http://localhost:5001": b'{"status":"ok","api_url":"http://evil.example"}',
            "http://localhost:5002": b"{}",
        }
    )
    discovery = ProbingServerDiscovery(
        transport,
        "http://localhost:5000",
        ("http://localhost:5001", "http://localhost:5002"),
    )

    assert await discovery.discover() == "http://localhost:5001"


@pytest.mark.asyncio
async def test_advertised_candidate_url_is_adopted() -> None:
    transport = _PortMap({"http://localhost:5001": b'{"status":"ok","api_url":"http://localhost:5002/"}'})
    discovery = ProbingServerDiscovery(
        transport,
        "http://localhost:5000",
        ("http://localhost:5001", "http://localhost:5002"),
    )

    assert await discovery.discover() == "http://localhost:5002"


@pytest.mark.asyncio
async def test_no_healthy_candidate_raises_and_keeps_url() -> None:
    discovery = ProbingServerDiscovery(_PortMap({}), "http://localhost:5000", ("http://localhost:5001",))

    with pytest.raises(NetworkUnreachableError) as excinfo:
        await discovery.discover()

    assert excinfo.value.attempts == 2
    assert discovery.current_url == "http://localhost:5000"


@pytest.mark.asyncio
async def test_unhealthy_status_is_skipped() -> None:
    api = FakeCareerForgeApi()
    api.script("GET", "/api/health", 503)
    discovery = ProbingServerDiscovery(api, "http://localhost:5000", ("http://localhost:5001",))

    assert await discovery.discover() == "http://localhost:5001"
    assert [r.url for r in api.requests] == [
        "http://localhost:5000/api/health",
        "http://localhost:5001/api/health",
    ]
