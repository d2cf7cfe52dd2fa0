"""Envelope written into the local cache for user-scoped data."""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Any

from pydantic import Field

from careerforge.models._base import CareerForgeModel


class EntrySource(StrEnum):
    LOCAL = "local"
    SERVER = "server"


class CachedEntry(CareerForgeModel):
    """User-scoped record as stored under ``<store>:<store>_<userId>``.

    ``data`` is the caller's value untouched, so a caller-supplied ``id``
    field never collides with the cache key.
    """

    id: str
    data: Any = None
    updated_at: float = Field(default_factory=time.time)
    source: EntrySource = EntrySource.LOCAL
