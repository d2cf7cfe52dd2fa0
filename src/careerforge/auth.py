"""Auth-service client and the access-token refresh schedule."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from careerforge._constants import (
    AUTH_LOGOUT_PATH,
    AUTH_REFRESH_PATH,
    AUTH_VALIDATE_PATH,
    DEFAULT_TOKEN_EXPIRY_LEEWAY,
    DEFAULT_TOKEN_REFRESH_INTERVAL,
)
from careerforge.exceptions import (
    AuthenticationRequiredError,
    NetworkError,
    TokenRefreshError,
)
from careerforge.gateway import NetworkGateway
from careerforge.identity import CredentialStore
from careerforge.models.token import AuthTokens

_logger = logging.getLogger(__name__)


class AuthService:
    """Talks to ``/api/auth/*`` and keeps the :class:`CredentialStore` current."""

    def __init__(
        self,
        gateway: NetworkGateway,
        credentials: CredentialStore,
        *,
        is_online: Callable[[], bool] = lambda: True,
    ) -> None:
        self._gateway = gateway
        self._credentials = credentials
        self._is_online = is_online

    async def refresh(self) -> AuthTokens:
        """Exchange the refresh token for a new access token.

        A rejected refresh token clears the credentials and raises
        :class:`TokenRefreshError`. Network failures propagate unchanged
        and leave the credentials in place so a later attempt can succeed.
        """
        refresh_token = self._credentials.refresh_token
        if not refresh_token:
            self._credentials.clear()
            raise TokenRefreshError("No refresh token available")

        response = await self._gateway.request(
            AUTH_REFRESH_PATH,
            method="POST",
            headers={"Content-Type": "application/json"},
            body=json.dumps({"refreshToken": refresh_token}),
        )
        if not response.ok:
            self._credentials.clear()
            raise TokenRefreshError(
                f"Refresh token rejected (HTTP {response.status})",
                status_code=response.status,
            )

        try:
            payload = response.json_body()
        except ValueError as exc:
            raise TokenRefreshError("Refresh response is not JSON", status_code=response.status) from exc
        token = payload.get("token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token.strip():
            raise TokenRefreshError("Refresh response carries no token", status_code=response.status)

        tokens = self._credentials.update_access_token(token)
        _logger.info("Access token refreshed")
        return tokens

    async def logout(self) -> None:
        """Notify the server (best effort, when online) and drop local credentials."""
        refresh_token = self._credentials.refresh_token
        try:
            if refresh_token and self._is_online():
                response = await self._gateway.request(
                    AUTH_LOGOUT_PATH,
                    method="POST",
                    headers={"Content-Type": "application/json"},
                    body=json.dumps({"refreshToken": refresh_token}),
                    max_retries=0,
                )
                if not response.ok:
                    _logger.warning("Server logout returned HTTP %d", response.status)
        except NetworkError:
            _logger.warning("Server logout failed; clearing local session anyway", exc_info=True)
        finally:
            self._credentials.clear()

    async def validate(self) -> bool:
        """Ask the server whether the current access token is still valid."""
        headers = self._credentials.auth_headers()
        if not headers:
            return False
        try:
            response = await self._gateway.request(AUTH_VALIDATE_PATH, headers=headers)
        except NetworkError:
            _logger.warning("Token validation failed", exc_info=True)
            return False
        return response.ok


class TokenRefreshScheduler:
    """Periodically refresh the access token before it expires.

    Every *interval* seconds the scheduler reads ``expires_at()`` and, when
    the token expires within *leeway* seconds, awaits ``refresh()``.
    Refresh failures are logged and the schedule continues. A token that
    cannot be decoded triggers ``on_invalid`` (typically logout).

    Parameters
    ----------
    expires_at : callable
        Returns the expiry as epoch seconds, ``None`` when unknown or no
        token is held. Raises :class:`AuthenticationRequiredError` for an
        undecodable token.
    refresh : callable
        Coroutine function performing the refresh.
    on_invalid : callable or None
        Coroutine function invoked when the token is undecodable.
    interval : float
        Seconds between checks.
    leeway : float
        Refresh window before expiry, in seconds.
    clock : callable
        Epoch-seconds clock.
    """

    def __init__(
        self,
        expires_at: Callable[[], float | None],
        refresh: Callable[[], Awaitable[Any]],
        *,
        on_invalid: Callable[[], Awaitable[Any]] | None = None,
        interval: float = DEFAULT_TOKEN_REFRESH_INTERVAL,
        leeway: float = DEFAULT_TOKEN_EXPIRY_LEEWAY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._expires_at = expires_at
        self._refresh = refresh
        self._on_invalid = on_invalid
        self._interval = interval
        self._leeway = leeway
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_current_task(self) -> bool:
        """True when called from inside the refresh task itself."""
        return self._task is not None and asyncio.current_task() is self._task

    def needs_refresh(self) -> bool:
        expires_at = self._expires_at()
        if expires_at is None:
            return False
        return expires_at - self._clock() < self._leeway

    async def check_once(self) -> bool:
        """Run one expiry check; return True when a refresh was performed."""
        try:
            due = self.needs_refresh()
        except AuthenticationRequiredError:
            _logger.warning("Stored access token is not decodable")
            if self._on_invalid is not None:
                await self._on_invalid()
            return False

        if not due:
            return False

        _logger.info("Access token expires within %.0fs, refreshing", self._leeway)
        try:
            await self._refresh()
        except TokenRefreshError:
            _logger.warning("Token refresh rejected", exc_info=True)
            return False
        except NetworkError:
            _logger.warning("Token refresh failed, will retry in %.0fs", self._interval, exc_info=True)
            return False
        return True

    def start(self) -> None:
        """Start the periodic task (restarting it if already running)."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.create_task(self._run(), name="careerforge-token-refresh")

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            await self.check_once()
            await asyncio.sleep(self._interval)
