"""Pydantic request models for client entrypoints.

These models provide a consistent "validate -> normalize -> execute" flow.
They are used internally by :class:`careerforge.sync.SyncCoordinator` and
:class:`careerforge.gateway.NetworkGateway`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from careerforge._constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_BASE_TIMEOUT,
    DEFAULT_INITIAL_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_INCREMENT,
    RESERVED_STORES,
    STORE_NAME_PATTERN,
)


class RetryPolicy(BaseModel):
    """Attempt/backoff/timeout shape for one gateway request.

    Attempt ``n`` (zero based) is bounded by
    ``base_timeout + n * timeout_increment`` seconds. After a failed
    attempt the gateway waits ``initial_delay * backoff_factor ** n``
    seconds before the next one.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
    )

    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    initial_delay: float = Field(default=DEFAULT_INITIAL_DELAY, ge=0)
    backoff_factor: float = Field(default=DEFAULT_BACKOFF_FACTOR, ge=1.0)
    base_timeout: float = Field(default=DEFAULT_BASE_TIMEOUT, gt=0)
    timeout_increment: float = Field(default=DEFAULT_TIMEOUT_INCREMENT, ge=0)

    @property
    def total_attempts(self) -> int:
        return self.max_retries + 1

    def timeout_for(self, attempt: int) -> float:
        """Timeout in seconds for the zero-based *attempt*."""
        return self.base_timeout + attempt * self.timeout_increment

    def delay_after(self, attempt: int) -> float:
        """Seconds to wait after the zero-based *attempt* failed."""
        return self.initial_delay * self.backoff_factor**attempt

    def with_overrides(
        self,
        *,
        max_retries: int | None = None,
        initial_delay: float | None = None,
    ) -> RetryPolicy:
        """Return a copy with per-call overrides applied (validated)."""
        if max_retries is None and initial_delay is None:
            return self
        data = self.model_dump()
        if max_retries is not None:
            data["max_retries"] = max_retries
        if initial_delay is not None:
            data["initial_delay"] = initial_delay
        return RetryPolicy.model_validate(data)


class StoreRequest(BaseModel):
    """Request addressing a user-scoped logical store."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    store_name: str

    @field_validator("store_name")
    @classmethod
    def _store_name_valid(cls, value: str) -> str:
        if not value:
            raise ValueError("store_name must be non-empty")
        if not STORE_NAME_PATTERN.match(value):
            raise ValueError(f"store_name may only contain letters, digits, '-' and '_', got {value!r}")
        if value in RESERVED_STORES:
            raise ValueError(f"store_name {value!r} is reserved")
        return value
