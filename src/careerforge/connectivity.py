"""Online/offline tracking and replay triggering.

The host platform pushes transitions with :meth:`ConnectivityMonitor.set_online`
and :meth:`ConnectivityMonitor.set_offline`; an optional periodic probe can
feed the same entry points. Going online schedules the pending-mutation
replay as a background task and returns immediately.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any

_logger = logging.getLogger(__name__)

Listener = Callable[[bool], None]
Probe = Callable[[], Awaitable[bool]]


class ConnectivityMonitor:
    """Holds the online flag consulted by the sync coordinator.

    Parameters
    ----------
    on_online : callable or None
        Coroutine function run (fire-and-forget) on every offline->online
        transition. The client wires it to
        ``SyncCoordinator.process_pending_requests``.
    online : bool
        Initial state.
    """

    def __init__(
        self,
        on_online: Callable[[], Awaitable[Any]] | None = None,
        *,
        online: bool = True,
    ) -> None:
        self._on_online = on_online
        self._online = online
        self._listeners: list[Listener] = []
        self._background: set[asyncio.Task[Any]] = set()
        self._probe_task: asyncio.Task[None] | None = None

    @property
    def is_online(self) -> bool:
        return self._online

    def bind(self, on_online: Callable[[], Awaitable[Any]]) -> None:
        """Attach the replay trigger after construction."""
        self._on_online = on_online

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _remove

    def set_online(self) -> asyncio.Task[Any] | None:
        """Mark online; on a transition, schedule the replay task and return it."""
        if self._online:
            return None
        self._online = True
        _logger.info("Application is online")
        self._notify(True)
        if self._on_online is None:
            return None
        return self._spawn(self._on_online())

    def set_offline(self) -> None:
        """Mark offline. In-flight requests are left to finish or fail on their own."""
        if not self._online:
            return
        self._online = False
        _logger.info("Application is offline")
        self._notify(False)

    def _notify(self, online: bool) -> None:
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception:
                _logger.warning("Connectivity listener failed", exc_info=True)

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Pending request replay failed", exc_info=exc)

    # ------------------------------------------------------------------
    # Periodic probing
    # ------------------------------------------------------------------

    def start(self, probe: Probe, interval: float) -> None:
        """Poll *probe* every *interval* seconds and apply its verdict."""
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if self._probe_task is not None and not self._probe_task.done():
            self._probe_task.cancel()
        self._probe_task = asyncio.create_task(self._probe_loop(probe, interval), name="careerforge-connectivity")

    async def check(self, probe: Probe) -> bool:
        """Run *probe* once and apply the result; a raising probe counts as offline."""
        try:
            reachable = await probe()
        except Exception:
            _logger.debug("Connectivity probe raised", exc_info=True)
            reachable = False
        if reachable:
            self.set_online()
        else:
            self.set_offline()
        return reachable

    async def _probe_loop(self, probe: Probe, interval: float) -> None:
        while True:
            await self.check(probe)
            await asyncio.sleep(interval)

    async def stop(self) -> None:
        """Stop probing and wait for outstanding replay tasks."""
        task = self._probe_task
        self._probe_task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
