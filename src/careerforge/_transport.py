"""Single-exchange HTTP transport on top of aiohttp."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol

import aiohttp

from careerforge._constants import USER_AGENT
from careerforge._redact import redact_body, redact_for_log
from careerforge.models.response import HttpResponse

_logger = logging.getLogger(__name__)


class HttpTransport(Protocol):
    """Structural transport interface used by the network gateway.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`AiohttpTransport`) concrete.

    Implementations return an :class:`HttpResponse` for any status code and
    raise only for transport-level failures (``aiohttp.ClientError``,
    ``TimeoutError``, ``OSError``).
    """

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: str | bytes | None,
        timeout: float,
    ) -> HttpResponse:
        ...


class AiohttpTransport:
    """HTTP transport that performs one request per call, no retries."""

    def __init__(self, http_session: aiohttp.ClientSession) -> None:
        self._http = http_session

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: str | bytes | None,
        timeout: float,
    ) -> HttpResponse:
        request_headers: dict[str, str] = {"user-agent": USER_AGENT, "accept": "application/json"}
        request_headers.update(headers)

        _logger.debug(
            "%s %s timeout=%.1fs headers=%s body=%s",
            method,
            url,
            timeout,
            redact_for_log(request_headers),
            redact_body(body),
        )

        async with self._http.request(
            method,
            url,
            data=body,
            headers=request_headers,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as resp:
            payload = await resp.read()
            response = HttpResponse(
                status=resp.status,
                url=str(resp.url),
                headers={k: v for k, v in resp.headers.items()},
                body=payload,
            )

        _logger.debug("HTTP %d from %s (%d bytes)", response.status, url, len(payload))
        return response
