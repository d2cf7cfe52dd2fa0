from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
import pytest
from fakes import FakeCareerForgeApi, RecordingSleep

from careerforge.discovery import StaticServerDiscovery
from careerforge.exceptions import NetworkUnreachableError, RequestCancelledError
from careerforge.gateway import NetworkGateway
from careerforge.models import HttpResponse, RetryPolicy


class _SwitchingDiscovery:
    """Moves the server from :5000 to :5001 on the first rediscovery."""

    def __init__(self, *, fail: bool = False) -> None:
        self.current_url = "http://localhost:5000"
        self.calls = 0
        self._fail = fail

    async def discover(self) -> str:
        self.calls += 1
        if self._fail:
            raise NetworkUnreachableError("No healthy API server", url=self.current_url)
        self.current_url = "http://localhost:5001"
        return self.current_url


class _HangingTransport:
    def __init__(self) -> None:
        self.calls = 0

    async def send(self, method: str, url: str, **_kwargs: Any) -> HttpResponse:
        self.calls += 1
        await asyncio.sleep(60)
        return HttpResponse(status=200, url=url)


def _gateway(api: Any, *, sleep: RecordingSleep | None = None, discovery: Any = None, **policy: Any) -> NetworkGateway:
    return NetworkGateway(
        api,
        discovery or StaticServerDiscovery("http://localhost:5000"),
        RetryPolicy(**policy),
        sleep=sleep or RecordingSleep(),
    )


@pytest.mark.asyncio
async def test_unreachable_server_exhausts_attempts_with_backoff_and_growing_timeouts() -> None:
    api = FakeCareerForgeApi(down=True)
    sleep = RecordingSleep()
    gateway = _gateway(api, sleep=sleep)

    with pytest.raises(NetworkUnreachableError) as excinfo:
        await gateway.request("/api/portfolio/get")

    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.__cause__, aiohttp.ClientConnectionError)
    assert [r.timeout for r in api.requests] == [10.0, 15.0, 20.0]
    assert sleep.delays == [1.0, 1.5]


@pytest.mark.asyncio
async def test_http_error_status_is_returned_without_retry() -> None:
    api = FakeCareerForgeApi()
    api.script("POST", "/api/portfolio/save", 500)
    sleep = RecordingSleep()
    gateway = _gateway(api, sleep=sleep)

    response = await gateway.request("/api/portfolio/save", method="POST", body="{}")

    assert response.status == 500
    assert len(api.requests) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_client_error_status_is_returned_without_retry() -> None:
    api = FakeCareerForgeApi()
    gateway = _gateway(api)

    response = await gateway.request("/api/portfolio/get")

    assert response.status == 401
    assert len(api.requests) == 1


@pytest.mark.asyncio
async def test_transient_failure_then_success() -> None:
    api = FakeCareerForgeApi()
    api.script("GET", "/api/health", aiohttp.ClientConnectionError("reset"))
    sleep = RecordingSleep()
    gateway = _gateway(api, sleep=sleep)

    response = await gateway.request("/api/health")

    assert response.ok
    assert len(api.requests) == 2
    assert sleep.delays == [1.0]


@pytest.mark.asyncio
async def test_per_call_overrides() -> None:
    api = FakeCareerForgeApi(down=True)
    sleep = RecordingSleep()
    gateway = _gateway(api, sleep=sleep)

    with pytest.raises(NetworkUnreachableError):
        await gateway.request("/api/health", max_retries=4, initial_delay=2.0)

    assert len(api.requests) == 5
    assert sleep.delays == [2.0, 3.0, 4.5, 6.75]


@pytest.mark.asyncio
async def test_zero_retries_is_single_attempt() -> None:
    api = FakeCareerForgeApi(down=True)
    sleep = RecordingSleep()
    gateway = _gateway(api, sleep=sleep, max_retries=0)

    with pytest.raises(NetworkUnreachableError) as excinfo:
        await gateway.request("/api/health")

    assert excinfo.value.attempts == 1
    assert len(api.requests) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_connectivity_failure_triggers_rediscovery_and_new_base_url() -> None:
    api = FakeCareerForgeApi()
    api.script("GET", "/api/health", aiohttp.ClientConnectionError("refused"))
    discovery = _SwitchingDiscovery()
    gateway = _gateway(api, discovery=discovery)

    response = await gateway.request("/api/health")

    assert response.ok
    assert discovery.calls == 1
    assert [r.url for r in api.requests] == [
        "http://localhost:5000/api/health",
        "http://localhost:5001/api/health",
    ]


@pytest.mark.asyncio
async def test_non_connectivity_error_does_not_rediscover() -> None:
    api = FakeCareerForgeApi()
    api.script("GET", "/api/health", aiohttp.ClientPayloadError("truncated"))
    discovery = _SwitchingDiscovery()
    gateway = _gateway(api, discovery=discovery)

    response = await gateway.request("/api/health")

    assert response.ok
    assert discovery.calls == 0


@pytest.mark.asyncio
async def test_failed_rediscovery_does_not_abort_retries() -> None:
    api = FakeCareerForgeApi(down=True)
    discovery = _SwitchingDiscovery(fail=True)
    gateway = _gateway(api, discovery=discovery)

    with pytest.raises(NetworkUnreachableError):
        await gateway.request("/api/health")

    assert len(api.requests) == 3
    assert discovery.calls == 2


@pytest.mark.asyncio
async def test_absolute_urls_are_not_rebased() -> None:
    api = FakeCareerForgeApi()
    gateway = _gateway(api)

    await gateway.request("http://127.0.0.1:9000/api/health")

    assert api.requests[0].url == "http://127.0.0.1:9000/api/health"


@pytest.mark.asyncio
async def test_attempt_timeout_counts_as_transport_failure() -> None:
    transport = _HangingTransport()
    gateway = _gateway(transport, max_retries=0, base_timeout=0.01)

    with pytest.raises(NetworkUnreachableError) as excinfo:
        await gateway.request("/api/health")

    assert isinstance(excinfo.value.__cause__, TimeoutError)
    assert transport.calls == 1


@pytest.mark.asyncio
async def test_cancel_before_first_attempt() -> None:
    api = FakeCareerForgeApi()
    cancel = asyncio.Event()
    cancel.set()
    gateway = _gateway(api)

    with pytest.raises(RequestCancelledError):
        await gateway.request("/api/health", cancel=cancel)

    assert api.requests == []


@pytest.mark.asyncio
async def test_cancel_interrupts_in_flight_attempt() -> None:
    transport = _HangingTransport()
    cancel = asyncio.Event()
    gateway = _gateway(transport)
    asyncio.get_running_loop().call_later(0.01, cancel.set)

    with pytest.raises(RequestCancelledError):
        await gateway.request("/api/health", cancel=cancel)

    assert transport.calls == 1


@pytest.mark.asyncio
async def test_cancel_during_backoff_wait() -> None:
    api = FakeCareerForgeApi(down=True)
    cancel = asyncio.Event()
    gateway = NetworkGateway(api, StaticServerDiscovery("http://localhost:5000"), RetryPolicy(initial_delay=30.0))
    asyncio.get_running_loop().call_later(0.01, cancel.set)

    with pytest.raises(RequestCancelledError):
        await gateway.request("/api/health", cancel=cancel)

    assert len(api.requests) == 1


@pytest.mark.asyncio
async def test_backoff_waits_follow_policy_delay_after() -> None:
    api = FakeCareerForgeApi(down=True)
    sleep = RecordingSleep()
    policy = RetryPolicy(max_retries=3, initial_delay=0.5, backoff_factor=2.0)
    gateway = NetworkGateway(api, StaticServerDiscovery("http://localhost:5000"), policy, sleep=sleep)

    with pytest.raises(NetworkUnreachableError):
        await gateway.request("/api/portfolio/get")

    assert sleep.delays == [0.5, 1.0, 2.0]
    assert sleep.delays == [policy.delay_after(n) for n in range(3)]
