"""Local-first data synchronization.

:class:`SyncCoordinator` is the single entry point UI code uses to persist
per-user component data ("portfolio", "quiz-results", ...). Writes are
committed locally first and propagated to the REST API when possible;
anything that cannot reach the server is queued and replayed when the
connectivity monitor reports the application is back online.

Consistency guarantees are weak:

* the local cache is the source of truth until a remote write lands;
* on read, a successful server response wins and overwrites the cache;
* concurrent saves to the same store race and the last network response
  wins;
* replay and fresh writes may interleave.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from careerforge._constants import (
    CURRENT_USER_PATH,
    USER_PROFILE_STORE,
    clear_path,
    get_path,
    save_path,
)
from careerforge.cache.pending import PendingQueue
from careerforge.cache.store import LocalCache
from careerforge.connectivity import ConnectivityMonitor
from careerforge.exceptions import (
    AuthenticationRequiredError,
    NetworkError,
    NetworkUnreachableError,
    RemoteRejectedError,
    StorageError,
)
from careerforge.gateway import NetworkGateway
from careerforge.identity import CredentialStore
from careerforge.models.cache import CachedEntry, EntrySource
from careerforge.models.mutation import HttpMethod, PendingMutation
from careerforge.models.requests import StoreRequest
from careerforge.models.response import HttpResponse

_logger = logging.getLogger(__name__)

_JSON_HEADERS = {"Content-Type": "application/json"}


class SaveOutcome(StrEnum):
    """How a successful :meth:`SyncCoordinator.save_data` reached the server."""

    SYNCED = "synced"
    QUEUED = "queued"


@dataclass(slots=True)
class ReplayReport:
    """Result of one :meth:`SyncCoordinator.process_pending_requests` pass."""

    replayed: int = 0
    failed: int = 0
    remaining: int = 0
    skipped: bool = False


def _excerpt(response: HttpResponse, limit: int = 200) -> str:
    return response.text()[:limit]


class SyncCoordinator:
    """Reconcile the local cache with the REST API.

    Parameters
    ----------
    cache : LocalCache
        Durable local store; always written before the network is tried.
    queue : PendingQueue
        Mutations waiting for connectivity.
    gateway : NetworkGateway
        Retrying HTTP executor.
    credentials : CredentialStore
        Source of the bearer token and the user scope.
    connectivity : ConnectivityMonitor
        Online flag consulted before every remote call.
    """

    def __init__(
        self,
        cache: LocalCache,
        queue: PendingQueue,
        gateway: NetworkGateway,
        credentials: CredentialStore,
        connectivity: ConnectivityMonitor,
    ) -> None:
        self._cache = cache
        self._queue = queue
        self._gateway = gateway
        self._credentials = credentials
        self._connectivity = connectivity
        self._replaying = False

    @property
    def queue(self) -> PendingQueue:
        return self._queue

    def is_online(self) -> bool:
        return self._connectivity.is_online

    def is_logged_in(self) -> bool:
        return self._credentials.is_logged_in()

    def get_user_id(self) -> str | None:
        return self._credentials.user_id()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _scope(self, store_name: str) -> tuple[str, str]:
        """Return ``(store, storage_key)``; the auth gate runs before validation or I/O."""
        identity = self._credentials.identity()
        store = StoreRequest(store_name=store_name).store_name
        return store, f"{store}_{identity.user_id}"

    def _headers(self, *, json_body: bool = False) -> dict[str, str]:
        headers = dict(_JSON_HEADERS) if json_body else {}
        headers.update(self._credentials.auth_headers())
        return headers

    async def _enqueue(self, url: str, method: HttpMethod, body: str | None, reason: str) -> PendingMutation:
        mutation = PendingMutation(
            url=url,
            method=method,
            headers=dict(_JSON_HEADERS) if body is not None else {},
            body=body,
        )
        _logger.warning("Deferring %s %s: %s", method.value, url, reason)
        return await self._queue.enqueue(mutation)

    @staticmethod
    def _unwrap(record: Any) -> Any:
        if record is None:
            return None
        try:
            return CachedEntry.model_validate(record).data
        except ValidationError:
            _logger.debug("Cache record is not an entry envelope; returning it as stored")
            return record

    # ------------------------------------------------------------------
    # User-scoped data
    # ------------------------------------------------------------------

    async def save_data(self, store_name: str, data: Any) -> SaveOutcome:
        """Write *data* locally, then propagate it to the server.

        Returns :attr:`SaveOutcome.SYNCED` when the server accepted the write
        and :attr:`SaveOutcome.QUEUED` when it was deferred (offline,
        unreachable, or a 5xx answer). A 4xx answer raises
        :class:`RemoteRejectedError`; the local write stays committed.
        """
        store, key = self._scope(store_name)

        entry = CachedEntry(id=key, data=data, source=EntrySource.LOCAL)
        await self._cache.put(store, entry.model_dump(by_alias=True))

        path = save_path(store)
        body = json.dumps(data, separators=(",", ":"))

        if not self.is_online():
            await self._enqueue(path, HttpMethod.POST, body, "offline")
            return SaveOutcome.QUEUED

        try:
            response = await self._gateway.request(
                path,
                method=HttpMethod.POST.value,
                headers=self._headers(json_body=True),
                body=body,
            )
        except NetworkError as exc:
            await self._enqueue(path, HttpMethod.POST, body, str(exc))
            return SaveOutcome.QUEUED

        if response.ok:
            _logger.debug("Saved %s remotely", key)
            return SaveOutcome.SYNCED

        if response.is_client_error:
            raise RemoteRejectedError(
                f"Server rejected {store} save (HTTP {response.status})",
                status_code=response.status,
                url=response.url or path,
                body=_excerpt(response),
            )

        await self._enqueue(path, HttpMethod.POST, body, f"HTTP {response.status}")
        return SaveOutcome.QUEUED

    async def get_data(self, store_name: str) -> Any | None:
        """Cache-first read, refreshed from the server when online.

        A successful server response overwrites the cached value and is
        returned. Any remote failure falls back to the cached value (or
        ``None``) without raising.
        """
        store, key = self._scope(store_name)
        local_value = self._unwrap(await self._cache.get(store, key))

        if not self.is_online():
            return local_value

        try:
            response = await self._gateway.request(get_path(store), headers=self._headers())
        except NetworkError:
            _logger.warning("Failed to fetch %s from server, using local data", store, exc_info=True)
            return local_value

        if not response.ok:
            _logger.warning("Server returned HTTP %d for %s, using local data", response.status, store)
            return local_value

        try:
            server_value = response.json_body()
        except ValueError:
            _logger.warning("Server response for %s is not JSON, using local data", store)
            return local_value

        entry = CachedEntry(id=key, data=server_value, source=EntrySource.SERVER)
        try:
            await self._cache.put(store, entry.model_dump(by_alias=True))
        except StorageError:
            _logger.warning("Could not cache server data for %s", key, exc_info=True)
        return server_value

    async def clear_data(self, store_name: str) -> None:
        """Delete the local entry, then the server copy (best effort).

        Remote failures never raise. Unreachable or 5xx deletes are queued
        so a later read cannot resurrect the data from the server.
        """
        store, key = self._scope(store_name)
        await self._cache.delete(store, key)

        path = clear_path(store)
        if not self.is_online():
            await self._enqueue(path, HttpMethod.DELETE, None, "offline")
            return

        try:
            response = await self._gateway.request(path, method=HttpMethod.DELETE.value, headers=self._headers())
        except NetworkError as exc:
            await self._enqueue(path, HttpMethod.DELETE, None, str(exc))
            return

        if response.ok:
            return
        if response.is_client_error:
            _logger.warning("Server rejected %s clear (HTTP %d)", store, response.status)
            return
        await self._enqueue(path, HttpMethod.DELETE, None, f"HTTP {response.status}")

    # ------------------------------------------------------------------
    # Pending mutations
    # ------------------------------------------------------------------

    async def add_pending_request(
        self,
        url: str,
        method: HttpMethod | str = HttpMethod.POST,
        *,
        headers: dict[str, str] | None = None,
        body: str | None = None,
    ) -> PendingMutation:
        """Queue an arbitrary request for replay once online."""
        mutation = PendingMutation(url=url, method=HttpMethod(method), headers=headers or {}, body=body)
        return await self._queue.enqueue(mutation)

    async def process_pending_requests(self) -> ReplayReport:
        """Replay queued mutations in enqueue order.

        Successful (2xx) replays are removed from the queue; failures stay
        queued with their attempt count bumped. The pass is skipped when
        offline, when no token is held, or while another pass is running.
        """
        if not self.is_online():
            return ReplayReport(skipped=True)
        if self._replaying:
            _logger.debug("Replay already in progress")
            return ReplayReport(skipped=True)
        if not self._credentials.is_logged_in():
            _logger.info("Pending requests kept until a user is logged in")
            return ReplayReport(skipped=True, remaining=await self._queue.size())

        self._replaying = True
        report = ReplayReport()
        try:
            mutations = await self._queue.list_all()
            if mutations:
                _logger.info("Replaying %d pending request(s)", len(mutations))
            for mutation in mutations:
                if not self.is_online():
                    _logger.info("Went offline during replay; stopping")
                    break
                if await self._replay_one(mutation):
                    report.replayed += 1
                else:
                    report.failed += 1
            report.remaining = await self._queue.size()
        finally:
            self._replaying = False

        _logger.info(
            "Replay finished: replayed=%d failed=%d remaining=%d",
            report.replayed,
            report.failed,
            report.remaining,
        )
        return report

    async def _replay_one(self, mutation: PendingMutation) -> bool:
        headers = dict(mutation.headers)
        headers.update(self._credentials.auth_headers())
        try:
            response = await self._gateway.request(
                mutation.url,
                method=mutation.method.value,
                headers=headers,
                body=mutation.body,
            )
        except NetworkError as exc:
            _logger.warning("Error processing pending request %s: %s", mutation.id, exc)
            await self._queue.replace(mutation.record_failure(str(exc)))
            return False

        if not response.ok:
            _logger.warning(
                "Pending request %s %s answered HTTP %d; keeping it queued",
                mutation.method.value,
                mutation.url,
                response.status,
            )
            await self._queue.replace(mutation.record_failure(f"HTTP {response.status}"))
            return False

        await self._queue.remove(mutation.id)
        return True

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def get_current_user(self) -> dict[str, Any]:
        """Fetch the user profile, caching it for offline use.

        Falls back to the cached profile when the server cannot be
        reached or refuses; raises only when no cached copy exists.
        """
        if not self._credentials.is_logged_in():
            raise AuthenticationRequiredError("User not authenticated")
        user_id = self._credentials.user_id()

        failure: Exception
        if not self.is_online():
            failure = NetworkUnreachableError("Offline", url=CURRENT_USER_PATH)
        else:
            try:
                response = await self._gateway.request(CURRENT_USER_PATH, headers=self._headers())
            except NetworkError as exc:
                failure = exc
            else:
                if response.ok:
                    try:
                        profile = response.json_body()
                    except ValueError as exc:
                        failure = exc
                    else:
                        if isinstance(profile, dict):
                            if user_id:
                                await self._cache.put(USER_PROFILE_STORE, {"id": user_id, "profile": profile})
                            return profile
                        failure = ValueError("User profile is not an object")
                else:
                    failure = RemoteRejectedError(
                        f"Failed to fetch user profile (HTTP {response.status})",
                        status_code=response.status,
                        url=response.url,
                        body=_excerpt(response),
                    )

        _logger.warning("Error fetching user profile: %s", failure)
        if user_id:
            cached = await self._cache.get(USER_PROFILE_STORE, user_id)
            if isinstance(cached, dict) and isinstance(cached.get("profile"), dict):
                return cached["profile"]
        raise failure
