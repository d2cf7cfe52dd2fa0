"""Local persistence layer.

Everything the client must remember while offline goes through here:
user-scoped records written by the sync coordinator and the queue of
mutations waiting for connectivity.
"""

from careerforge.cache.backends import MemoryBackend, SqliteBackend, StorageBackend
from careerforge.cache.pending import PendingQueue
from careerforge.cache.store import LocalCache, composite_key

__all__ = [
    "LocalCache",
    "MemoryBackend",
    "PendingQueue",
    "SqliteBackend",
    "StorageBackend",
    "composite_key",
]
