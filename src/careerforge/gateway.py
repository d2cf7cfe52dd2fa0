"""Resilient request execution: growing timeouts, backoff, rediscovery.

Only reachability is retried. Any HTTP status, 4xx and 5xx included, is a
completed exchange and is handed back to the caller as-is.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

import aiohttp

from careerforge._redact import redact_for_log
from careerforge._transport import HttpTransport
from careerforge.discovery import ServerDiscovery
from careerforge.exceptions import NetworkUnreachableError, RequestCancelledError
from careerforge.models.requests import RetryPolicy
from careerforge.models.response import HttpResponse

_logger = logging.getLogger(__name__)

T = TypeVar("T")

#: Failures that mean "the request did not complete", as opposed to an HTTP error status.
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (aiohttp.ClientError, TimeoutError, OSError)

#: Subset after which the server may have moved (restarted on another port).
CONNECTIVITY_ERRORS: tuple[type[BaseException], ...] = (aiohttp.ClientConnectionError, TimeoutError, OSError)

Sleeper = Callable[[float], Awaitable[None]]


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


class NetworkGateway:
    """Best-effort remote calls with bounded retries.

    Parameters
    ----------
    transport : HttpTransport
        Performs one HTTP exchange.
    discovery : ServerDiscovery
        Resolves the base URL for API paths and rediscovers it after
        connectivity failures.
    policy : RetryPolicy
        Default attempt/backoff/timeout shape.
    sleep : callable
        Awaitable sleep used between attempts. Tests inject a recorder.
    """

    def __init__(
        self,
        transport: HttpTransport,
        discovery: ServerDiscovery,
        policy: RetryPolicy | None = None,
        *,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._discovery = discovery
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def base_url(self) -> str:
        return self._discovery.current_url

    def resolve_url(self, url: str) -> str:
        """Prefix API paths with the currently discovered base URL."""
        if url.startswith("/"):
            return f"{self._discovery.current_url.rstrip('/')}{url}"
        return url

    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: str | bytes | None = None,
        max_retries: int | None = None,
        initial_delay: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> HttpResponse:
        """Perform *method* on *url*, retrying transport failures.

        Returns the first completed :class:`HttpResponse`, whatever its
        status. Raises :class:`RequestCancelledError` as soon as *cancel*
        is set and :class:`NetworkUnreachableError` once
        ``max_retries + 1`` attempts have failed.
        """
        policy = self._policy.with_overrides(max_retries=max_retries, initial_delay=initial_delay)
        request_headers = dict(headers or {})
        last_error: BaseException | None = None
        target = self.resolve_url(url)

        for attempt in range(policy.total_attempts):
            if cancel is not None and cancel.is_set():
                raise RequestCancelledError(f"{method} {target} cancelled", url=target)

            target = self.resolve_url(url)
            timeout = policy.timeout_for(attempt)
            _logger.debug(
                "%s %s attempt=%d/%d timeout=%.1fs headers=%s",
                method,
                target,
                attempt + 1,
                policy.total_attempts,
                timeout,
                redact_for_log(request_headers),
            )

            try:
                return await self._race(
                    asyncio.wait_for(
                        self._transport.send(
                            method,
                            target,
                            headers=request_headers,
                            body=body,
                            timeout=timeout,
                        ),
                        timeout,
                    ),
                    cancel,
                    target,
                )
            except TRANSPORT_ERRORS as exc:
                last_error = exc
                _logger.warning(
                    "%s %s failed on attempt %d/%d: %s",
                    method,
                    target,
                    attempt + 1,
                    policy.total_attempts,
                    _describe(exc),
                )

            if attempt + 1 >= policy.total_attempts:
                break

            delay = policy.delay_after(attempt)
            _logger.debug("Retrying %s %s in %.2fs", method, target, delay)
            await self._race(self._sleep(delay), cancel, target)

            if isinstance(last_error, CONNECTIVITY_ERRORS):
                await self._rediscover()

        _logger.error("%s %s unreachable after %d attempt(s)", method, target, policy.total_attempts)
        raise NetworkUnreachableError(
            f"{method} {target} failed after {policy.total_attempts} attempt(s): "
            f"{_describe(last_error) if last_error else 'unknown error'}",
            url=target,
            attempts=policy.total_attempts,
        ) from last_error

    async def _rediscover(self) -> None:
        """Best-effort server rediscovery; never aborts the retry loop."""
        try:
            await self._discovery.discover()
        except Exception:
            _logger.warning("Server discovery failed; retrying against %s", self.base_url, exc_info=True)

    @staticmethod
    async def _race(awaitable: Awaitable[T], cancel: asyncio.Event | None, url: str) -> T:
        """Await *awaitable* unless *cancel* fires first."""
        if cancel is None:
            return await awaitable

        work: asyncio.Future[T] = asyncio.ensure_future(awaitable)
        waiter: asyncio.Future[Any] = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            waiter.cancel()
            raise

        if work in done:
            waiter.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await waiter
            return work.result()

        work.cancel()
        with contextlib.suppress(asyncio.CancelledError, *TRANSPORT_ERRORS):
            await work
        raise RequestCancelledError(f"Request to {url} cancelled", url=url)
