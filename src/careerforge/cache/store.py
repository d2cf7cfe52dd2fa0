"""Thin JSON durability layer keyed by ``(store, id)``.

This is not a database: exact-key lookup only, no indexes,
no transactions, no eviction. Concurrent writers to the same key follow
last-write-wins.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from careerforge.cache.backends import MemoryBackend, StorageBackend
from careerforge.exceptions import EncodingError, StorageError

_logger = logging.getLogger(__name__)


def composite_key(store_name: str, key: str | int) -> str:
    return f"{store_name}:{key}"


class LocalCache:
    """Store, retrieve and delete JSON records over a :class:`StorageBackend`."""

    def __init__(self, backend: StorageBackend | None = None, *, key_field: str = "id") -> None:
        self._backend: StorageBackend = backend if backend is not None else MemoryBackend()
        self._key_field = key_field

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    async def put(self, store_name: str, record: Mapping[str, Any]) -> str:
        """Upsert *record* under ``store_name:record[key_field]``.

        Returns the composite key. Raises :class:`ValueError` when the
        record has no key field, :class:`EncodingError` when it is not
        JSON-serializable and :class:`StorageError` on backend failure.
        """
        if not isinstance(record, Mapping):
            raise EncodingError(
                f"Record for {store_name} must be a mapping, got {type(record).__name__}",
                store_name=store_name,
            )
        key = record.get(self._key_field)
        if key is None or key == "":
            raise ValueError(f"Record for {store_name} has no {self._key_field!r} field")

        full_key = composite_key(store_name, key)
        try:
            encoded = json.dumps(record, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise EncodingError(
                f"Record {full_key} is not JSON-serializable: {exc}",
                store_name=store_name,
                key=str(key),
            ) from exc

        await self._write(full_key, encoded, store_name, str(key))
        _logger.debug("Cached %s (%d bytes)", full_key, len(encoded))
        return full_key

    async def get(self, store_name: str, key: str | int) -> Any | None:
        """Return the stored record, or ``None`` when absent."""
        full_key = composite_key(store_name, key)
        try:
            encoded = await self._backend.read(full_key)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"Failed to read {full_key}: {exc}", store_name=store_name, key=str(key)) from exc

        if encoded is None:
            return None
        try:
            return json.loads(encoded)
        except json.JSONDecodeError as exc:
            raise EncodingError(
                f"Cached value for {full_key} is not valid JSON",
                store_name=store_name,
                key=str(key),
            ) from exc

    async def delete(self, store_name: str, key: str | int) -> None:
        """Remove the entry; deleting a missing key is a no-op."""
        full_key = composite_key(store_name, key)
        try:
            await self._backend.remove(full_key)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"Failed to delete {full_key}: {exc}", store_name=store_name, key=str(key)) from exc
        _logger.debug("Deleted %s", full_key)

    async def _write(self, full_key: str, encoded: str, store_name: str, key: str) -> None:
        try:
            await self._backend.write(full_key, encoded)
        except StorageError as exc:
            if not exc.store_name:
                exc.store_name = store_name
                exc.key = key
            raise
        except Exception as exc:
            raise StorageError(f"Failed to write {full_key}: {exc}", store_name=store_name, key=key) from exc

    async def close(self) -> None:
        await self._backend.close()
