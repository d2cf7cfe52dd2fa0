"""Client configuration for careerforge."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from careerforge._constants import (
    DEFAULT_API_URL,
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_BASE_TIMEOUT,
    DEFAULT_INITIAL_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_INCREMENT,
    DEFAULT_TOKEN_EXPIRY_LEEWAY,
    DEFAULT_TOKEN_REFRESH_INTERVAL,
)
from careerforge.exceptions import CareerForgeConfigError
from careerforge.models.requests import RetryPolicy


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_urls(value: str) -> tuple[str, ...]:
    return tuple(part.strip().rstrip("/") for part in value.split(",") if part.strip())


@dataclasses.dataclass(frozen=True)
class CareerForgeConfig:
    """Client configuration.

    Parameters
    ----------
    api_url : str
        Base URL of the CareerForge REST API.
    candidate_urls : tuple of str
        Extra base URLs probed by server discovery when ``api_url`` stops
        answering. The server binds the first free port from 5000 upward,
        so a typical value is ``("http://localhost:5001", ...)``.
    cache_path : str or None
        SQLite file backing the local cache. ``None`` keeps the cache in
        memory for the lifetime of the client.
    max_retries : int
        Additional attempts after the first transport failure.
    initial_delay : float
        Seconds to wait before the first retry.
    backoff_factor : float
        Multiplier applied to the delay after every retry.
    base_timeout : float
        Timeout in seconds for the first attempt.
    timeout_increment : float
        Seconds added to the timeout for every subsequent attempt.
    token_refresh_interval : float
        Seconds between token expiry checks.
    token_expiry_leeway : float
        Refresh the access token when it expires within this many seconds.
    connectivity_probe_interval : float
        Seconds between health probes feeding the connectivity monitor.
        ``0`` disables probing; connectivity is then only changed by
        explicit ``set_online``/``set_offline`` signals.
    start_online : bool
        Initial connectivity state.
    """

    api_url: str = DEFAULT_API_URL
    candidate_urls: tuple[str, ...] = ()
    cache_path: str | None = None
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_delay: float = DEFAULT_INITIAL_DELAY
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    base_timeout: float = DEFAULT_BASE_TIMEOUT
    timeout_increment: float = DEFAULT_TIMEOUT_INCREMENT
    token_refresh_interval: float = DEFAULT_TOKEN_REFRESH_INTERVAL
    token_expiry_leeway: float = DEFAULT_TOKEN_EXPIRY_LEEWAY
    connectivity_probe_interval: float = 0.0
    start_online: bool = True

    def __post_init__(self) -> None:
        if not self.api_url.strip():
            raise CareerForgeConfigError("api_url must be non-empty")
        object.__setattr__(self, "api_url", self.api_url.strip().rstrip("/"))
        if self.token_refresh_interval <= 0:
            raise CareerForgeConfigError(
                f"token_refresh_interval must be positive, got {self.token_refresh_interval}"
            )
        if self.token_expiry_leeway < 0:
            raise CareerForgeConfigError(f"token_expiry_leeway must be >= 0, got {self.token_expiry_leeway}")
        if self.connectivity_probe_interval < 0:
            raise CareerForgeConfigError(
                f"connectivity_probe_interval must be >= 0, got {self.connectivity_probe_interval}"
            )
        # Retry settings are validated eagerly.
        self.retry_policy()

    def retry_policy(self) -> RetryPolicy:
        """Build the validated retry policy for the network gateway."""
        try:
            return RetryPolicy(
                max_retries=self.max_retries,
                initial_delay=self.initial_delay,
                backoff_factor=self.backoff_factor,
                base_timeout=self.base_timeout,
                timeout_increment=self.timeout_increment,
            )
        except ValueError as exc:
            raise CareerForgeConfigError(f"Invalid retry settings: {exc}") from exc

    @classmethod
    def from_env(cls, **overrides: Any) -> CareerForgeConfig:
        """Create configuration from environment variables.

        Reads ``CAREERFORGE_API_URL``, ``CAREERFORGE_CANDIDATE_URLS``
        (comma separated), ``CAREERFORGE_CACHE_PATH`` and the numeric
        ``CAREERFORGE_*`` tuning variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        CareerForgeConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        api_url = env.get("CAREERFORGE_API_URL")
        if api_url is not None:
            config_kwargs["api_url"] = api_url

        candidates = env.get("CAREERFORGE_CANDIDATE_URLS")
        if candidates is not None:
            config_kwargs["candidate_urls"] = _env_urls(candidates)

        cache_path = env.get("CAREERFORGE_CACHE_PATH")
        if cache_path:
            config_kwargs["cache_path"] = cache_path

        _ENV_FLOAT_MAP = {
            "CAREERFORGE_INITIAL_DELAY": "initial_delay",
            "CAREERFORGE_BACKOFF_FACTOR": "backoff_factor",
            "CAREERFORGE_BASE_TIMEOUT": "base_timeout",
            "CAREERFORGE_TIMEOUT_INCREMENT": "timeout_increment",
            "CAREERFORGE_TOKEN_REFRESH_INTERVAL": "token_refresh_interval",
            "CAREERFORGE_TOKEN_EXPIRY_LEEWAY": "token_expiry_leeway",
            "CAREERFORGE_CONNECTIVITY_PROBE_INTERVAL": "connectivity_probe_interval",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise CareerForgeConfigError(f"{env_key} must be a number, got {val!r}") from exc

        retries_env = env.get("CAREERFORGE_MAX_RETRIES")
        if retries_env is not None and "max_retries" not in overrides:
            try:
                config_kwargs["max_retries"] = int(retries_env)
            except ValueError as exc:
                raise CareerForgeConfigError(f"CAREERFORGE_MAX_RETRIES must be an integer, got {retries_env!r}") from exc

        if "start_online" not in overrides:
            config_kwargs["start_online"] = _env_bool(env.get("CAREERFORGE_START_ONLINE"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
