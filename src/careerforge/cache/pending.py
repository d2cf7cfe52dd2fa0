"""Durable FIFO of mutations waiting for connectivity.

The whole queue lives in one reserved cache entry
(``pendingRequests:queue``) so enqueue order survives a restart. Every
read-modify-write of that entry happens under an ``asyncio.Lock``;
replay order against fresh writes is not coordinated here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from careerforge._constants import PENDING_QUEUE_KEY, PENDING_STORE
from careerforge.cache.store import LocalCache
from careerforge.models.mutation import PendingMutation

_logger = logging.getLogger(__name__)


class PendingQueue:
    """Ordered list of :class:`PendingMutation` persisted in a :class:`LocalCache`."""

    def __init__(self, cache: LocalCache, *, store_name: str = PENDING_STORE) -> None:
        self._cache = cache
        self._store_name = store_name
        self._lock = asyncio.Lock()

    async def _load(self) -> list[PendingMutation]:
        record = await self._cache.get(self._store_name, PENDING_QUEUE_KEY)
        if not isinstance(record, dict):
            return []
        items: list[PendingMutation] = []
        for raw in record.get("items", []):
            try:
                items.append(PendingMutation.model_validate(raw))
            except ValidationError:
                _logger.warning("Dropping malformed pending mutation: %r", raw)
        return items

    async def _save(self, items: list[PendingMutation]) -> None:
        if not items:
            await self._cache.delete(self._store_name, PENDING_QUEUE_KEY)
            return
        record: dict[str, Any] = {
            "id": PENDING_QUEUE_KEY,
            "items": [item.to_wire() for item in items],
        }
        await self._cache.put(self._store_name, record)

    async def enqueue(self, mutation: PendingMutation) -> PendingMutation:
        async with self._lock:
            items = await self._load()
            items.append(mutation)
            await self._save(items)
        _logger.info(
            "Queued %s %s for replay (id=%s, depth=%d)",
            mutation.method.value,
            mutation.url,
            mutation.id,
            len(items),
        )
        return mutation

    async def list_all(self) -> list[PendingMutation]:
        """Snapshot of the queue in enqueue order."""
        async with self._lock:
            return await self._load()

    async def remove(self, mutation_id: str) -> bool:
        async with self._lock:
            items = await self._load()
            remaining = [item for item in items if item.id != mutation_id]
            if len(remaining) == len(items):
                return False
            await self._save(remaining)
        return True

    async def replace(self, mutation: PendingMutation) -> bool:
        """Overwrite a queued mutation in place, keeping its position."""
        async with self._lock:
            items = await self._load()
            for index, item in enumerate(items):
                if item.id == mutation.id:
                    items[index] = mutation
                    await self._save(items)
                    return True
        return False

    async def size(self) -> int:
        return len(await self.list_all())

    async def clear(self) -> None:
        async with self._lock:
            await self._cache.delete(self._store_name, PENDING_QUEUE_KEY)
