"""High-level async client for the CareerForge sync layer."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from careerforge._constants import HEALTH_PATH
from careerforge._transport import AiohttpTransport, HttpTransport
from careerforge.auth import AuthService, TokenRefreshScheduler
from careerforge.cache.backends import MemoryBackend, SqliteBackend, StorageBackend
from careerforge.cache.pending import PendingQueue
from careerforge.cache.store import LocalCache
from careerforge.config import CareerForgeConfig
from careerforge.connectivity import ConnectivityMonitor
from careerforge.discovery import (
    DEFAULT_PROBE_TIMEOUT,
    ProbingServerDiscovery,
    ServerDiscovery,
    StaticServerDiscovery,
)
from careerforge.exceptions import AuthenticationRequiredError, CareerForgeError
from careerforge.gateway import NetworkGateway, Sleeper
from careerforge.identity import CredentialStore
from careerforge.models.mutation import HttpMethod, PendingMutation
from careerforge.models.token import AuthTokens, UserIdentity
from careerforge.sync import ReplayReport, SaveOutcome, SyncCoordinator

_logger = logging.getLogger(__name__)


class CareerForgeClient:
    """Async client wiring cache, gateway, auth and sync together.

    Usage::

        async with CareerForgeClient(config) as client:
            await client.login(token, refresh_token)
            await client.save_data("portfolio", {"projects": [...]})
            portfolio = await client.get_data("portfolio")
    """

    def __init__(
        self,
        config: CareerForgeConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: HttpTransport | None = None,
        backend: StorageBackend | None = None,
        discovery: ServerDiscovery | None = None,
        sleep: Sleeper | None = None,
    ) -> None:
        self._config = config or CareerForgeConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._external_transport = transport is not None
        self._backend = backend
        self._external_backend = backend is not None
        self._discovery = discovery
        self._external_discovery = discovery is not None
        self._sleep = sleep
        self._credentials = CredentialStore()
        self._connectivity = ConnectivityMonitor(online=self._config.start_online)
        self._cache: LocalCache | None = None
        self._gateway: NetworkGateway | None = None
        self._auth: AuthService | None = None
        self._sync: SyncCoordinator | None = None
        self._scheduler: TokenRefreshScheduler | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> CareerForgeClient:
        config = self._config
        if self._backend is None:
            if config.cache_path:
                sqlite = SqliteBackend(config.cache_path)
                await sqlite.initialize()
                self._backend = sqlite
            else:
                self._backend = MemoryBackend()

        transport = self._transport
        if transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            transport = AiohttpTransport(self._http_session)
        self._transport = transport

        if self._discovery is None:
            if config.candidate_urls:
                self._discovery = ProbingServerDiscovery(transport, config.api_url, config.candidate_urls)
            else:
                self._discovery = StaticServerDiscovery(config.api_url)

        gateway_kwargs: dict[str, Any] = {}
        if self._sleep is not None:
            gateway_kwargs["sleep"] = self._sleep
        self._gateway = NetworkGateway(transport, self._discovery, config.retry_policy(), **gateway_kwargs)

        self._cache = LocalCache(self._backend)
        self._auth = AuthService(self._gateway, self._credentials, is_online=lambda: self._connectivity.is_online)
        self._sync = SyncCoordinator(
            self._cache,
            PendingQueue(self._cache),
            self._gateway,
            self._credentials,
            self._connectivity,
        )
        self._connectivity.bind(self._sync.process_pending_requests)
        self._scheduler = TokenRefreshScheduler(
            self._credentials.expires_at,
            self._auth.refresh,
            on_invalid=self.logout,
            interval=config.token_refresh_interval,
            leeway=config.token_expiry_leeway,
        )

        if config.connectivity_probe_interval > 0:
            self._connectivity.start(self._probe_health, config.connectivity_probe_interval)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._scheduler is not None:
            await self._scheduler.stop()
            self._scheduler = None
        await self._connectivity.stop()
        if self._cache is not None:
            await self._cache.close()
            self._cache = None
        if not self._external_backend:
            self._backend = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None
        if not self._external_discovery:
            self._discovery = None
        self._sync = None
        self._auth = None
        self._gateway = None

    def _require_sync(self) -> SyncCoordinator:
        if self._sync is None:
            raise CareerForgeError("Client not initialized. Use 'async with CareerForgeClient(...) as client:'")
        return self._sync

    def _require_auth(self) -> AuthService:
        if self._auth is None:
            raise CareerForgeError("Client not initialized. Use 'async with CareerForgeClient(...) as client:'")
        return self._auth

    async def _probe_health(self) -> bool:
        if self._transport is None or self._discovery is None:
            return False
        response = await self._transport.send(
            "GET",
            f"{self._discovery.current_url}{HEALTH_PATH}",
            headers={},
            body=None,
            timeout=DEFAULT_PROBE_TIMEOUT,
        )
        return response.ok

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> CareerForgeConfig:
        return self._config

    @property
    def credentials(self) -> CredentialStore:
        return self._credentials

    @property
    def connectivity(self) -> ConnectivityMonitor:
        return self._connectivity

    @property
    def sync(self) -> SyncCoordinator:
        return self._require_sync()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(
        self,
        token: str,
        refresh_token: str | None = None,
        username: str | None = None,
    ) -> UserIdentity:
        """Adopt tokens issued by the auth service and start the refresh schedule.

        Raises :class:`AuthenticationRequiredError` (leaving the client
        logged out) when *token* carries no decodable user id.

        Queued mutations are replayed only on an offline to online
        transition. A client that starts online over a persisted cache
        should call :meth:`process_pending_requests` after logging in to
        flush writes left by a previous run.
        """
        self._require_auth()
        self._credentials.set_tokens(token, refresh_token, username)
        try:
            identity = self._credentials.identity()
        except AuthenticationRequiredError:
            self._credentials.clear()
            raise
        if self._scheduler is not None:
            self._scheduler.start()
        _logger.info("Logged in as user %s", identity.user_id)
        return identity

    async def logout(self) -> None:
        """Stop refreshing, notify the server when online and drop credentials."""
        # The scheduler itself calls logout on an undecodable token.
        if self._scheduler is not None and not self._scheduler.is_current_task():
            await self._scheduler.stop()
        await self._require_auth().logout()

    async def refresh_token(self) -> AuthTokens:
        return await self._require_auth().refresh()

    async def validate_token(self) -> bool:
        return await self._require_auth().validate()

    def is_logged_in(self) -> bool:
        return self._credentials.is_logged_in()

    def get_user_id(self) -> str | None:
        return self._credentials.user_id()

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    def is_online(self) -> bool:
        return self._connectivity.is_online

    def set_online(self) -> None:
        self._connectivity.set_online()

    def set_offline(self) -> None:
        self._connectivity.set_offline()

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    async def save_data(self, store_name: str, data: Any) -> SaveOutcome:
        return await self._require_sync().save_data(store_name, data)

    async def get_data(self, store_name: str) -> Any | None:
        return await self._require_sync().get_data(store_name)

    async def clear_data(self, store_name: str) -> None:
        await self._require_sync().clear_data(store_name)

    async def add_pending_request(
        self,
        url: str,
        method: HttpMethod | str = HttpMethod.POST,
        *,
        headers: dict[str, str] | None = None,
        body: str | None = None,
    ) -> PendingMutation:
        return await self._require_sync().add_pending_request(url, method, headers=headers, body=body)

    async def process_pending_requests(self) -> ReplayReport:
        return await self._require_sync().process_pending_requests()

    async def get_current_user(self) -> dict[str, Any]:
        return await self._require_sync().get_current_user()
