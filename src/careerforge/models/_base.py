"""Base model for CareerForge payloads.

Every wire-facing model inherits from :class:`CareerForgeModel` which
provides:

* ``alias_generator=to_camel`` so the camelCase keys used by the REST API
  and by persisted cache entries map to snake_case fields.
* ``populate_by_name`` so Python callers can construct models with
  snake_case keyword arguments.
* ``to_wire()`` which dumps back to the camelCase JSON-compatible shape.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CareerForgeModel(BaseModel):
    """Base for CareerForge wire and cache models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to a camelCase, JSON-compatible dict."""
        return self.model_dump(mode="json", by_alias=True)
