"""Deferred writes awaiting network replay."""

from __future__ import annotations

import time
import uuid
from enum import StrEnum

from pydantic import Field, field_validator

from careerforge.models._base import CareerForgeModel


class HttpMethod(StrEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


def _new_mutation_id() -> str:
    return uuid.uuid4().hex


class PendingMutation(CareerForgeModel):
    """A captured, not-yet-confirmed write.

    Parameters
    ----------
    id : str
        Queue-unique identifier.
    url : str
        API path (``/api/portfolio/save``) or absolute URL. Paths are
        resolved against the currently discovered base URL at replay time.
    method : HttpMethod
        HTTP verb to replay.
    headers : dict
        Request headers, without ``Authorization``. The bearer token that
        is current at replay time is attached by the coordinator.
    body : str or None
        Serialized request body.
    enqueued_at : float
        Epoch seconds when the mutation was queued.
    attempts : int
        Failed replay attempts so far.
    last_error : str or None
        Description of the most recent replay failure.
    """

    id: str = Field(default_factory=_new_mutation_id)
    url: str
    method: HttpMethod = HttpMethod.POST
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None
    enqueued_at: float = Field(default_factory=time.time)
    attempts: int = Field(default=0, ge=0)
    last_error: str | None = None

    @field_validator("headers")
    @classmethod
    def _drop_authorization(cls, value: dict[str, str]) -> dict[str, str]:
        return {k: v for k, v in value.items() if k.lower() != "authorization"}

    @field_validator("url")
    @classmethod
    def _url_non_empty(cls, value: str) -> str:
        url = value.strip()
        if not url:
            raise ValueError("url must be non-empty")
        return url

    def record_failure(self, error: str) -> PendingMutation:
        """Return a copy with the failed attempt recorded."""
        return self.model_copy(update={"attempts": self.attempts + 1, "last_error": error})
