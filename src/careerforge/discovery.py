"""API base-URL resolution.

The CareerForge server binds the first free port from 5000 upward and
reports its own URL from ``GET /api/health``. The gateway asks a
:class:`ServerDiscovery` for the base URL before every attempt and, after a
connectivity-class failure, asks it to rediscover.
"""

from __future__ import annotations

import logging
from typing import Protocol

from careerforge._constants import HEALTH_PATH
from careerforge._transport import HttpTransport
from careerforge.exceptions import NetworkUnreachableError

_logger = logging.getLogger(__name__)

#: Probes must answer quickly; a slow candidate is as good as a dead one.
DEFAULT_PROBE_TIMEOUT = 3.0


class ServerDiscovery(Protocol):
    @property
    def current_url(self) -> str:
        ...

    async def discover(self) -> str:
        ...


class StaticServerDiscovery:
    """Always resolves to the configured URL."""

    def __init__(self, api_url: str) -> None:
        self._url = api_url.rstrip("/")

    @property
    def current_url(self) -> str:
        return self._url

    async def discover(self) -> str:
        return self._url


class ProbingServerDiscovery:
    """Probe candidate base URLs and keep the first healthy one.

    The current URL is probed first so a healthy server is never swapped
    for a candidate. If no candidate answers, the current URL is kept and
    :class:`NetworkUnreachableError` is raised.
    """

    def __init__(
        self,
        transport: HttpTransport,
        api_url: str,
        candidates: tuple[str, ...] = (),
        *,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        self._transport = transport
        self._url = api_url.rstrip("/")
        self._candidates = tuple(c.rstrip("/") for c in candidates)
        self._probe_timeout = probe_timeout

    @property
    def current_url(self) -> str:
        return self._url

    def _ordered_candidates(self) -> list[str]:
        ordered = [self._url]
        for candidate in self._candidates:
            if candidate not in ordered:
                ordered.append(candidate)
        return ordered

    async def _probe(self, base_url: str) -> str | None:
        """Return the base URL the server advertises, or None when unhealthy."""
        try:
            response = await self._transport.send(
                "GET",
                f"{base_url}{HEALTH_PATH}",
                headers={},
                body=None,
                timeout=self._probe_timeout,
            )
        except Exception:
            _logger.debug("Health probe failed for %s", base_url, exc_info=True)
            return None

        if not response.ok:
            _logger.debug("Health probe for %s returned HTTP %d", base_url, response.status)
            return None

        try:
            payload = response.json_body()
        except ValueError:
            return base_url
        advertised = payload.get("api_url") if isinstance(payload, dict) else None
        # Only trust the advertised URL when it points at the host we reached.
        if isinstance(advertised, str) and advertised.rstrip("/") in self._ordered_candidates():
            return advertised.rstrip("/")
        return base_url

    async def discover(self) -> str:
        for candidate in self._ordered_candidates():
            resolved = await self._probe(candidate)
            if resolved is None:
                continue
            if resolved != self._url:
                _logger.info("API server discovered at %s (was %s)", resolved, self._url)
                self._url = resolved
            return self._url

        raise NetworkUnreachableError(
            f"No healthy API server among {len(self._ordered_candidates())} candidate(s)",
            url=self._url,
            attempts=len(self._ordered_candidates()),
        )
