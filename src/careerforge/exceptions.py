"""Custom exception hierarchy for careerforge."""

from __future__ import annotations


class CareerForgeError(Exception):
    """Base exception for all careerforge errors."""


class CareerForgeConfigError(CareerForgeError):
    """Invalid or missing configuration."""


class AuthenticationRequiredError(CareerForgeError):
    """No usable user identity (missing or undecodable bearer token).

    User-scoped operations raise this before touching the local cache or
    the network. Callers are expected to surface it as a login prompt.
    """


class TokenRefreshError(AuthenticationRequiredError):
    """The auth service rejected the refresh token."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class StorageError(CareerForgeError):
    """Local persistence failed (backend error, quota exceeded)."""

    def __init__(
        self,
        message: str,
        *,
        store_name: str = "",
        key: str = "",
    ) -> None:
        self.store_name = store_name
        self.key = key
        super().__init__(message)


class EncodingError(StorageError):
    """A record could not be serialized to, or parsed from, JSON."""


class NetworkError(CareerForgeError):
    """Transport-level failure talking to the API."""

    def __init__(self, message: str, *, url: str = "") -> None:
        self.url = url
        super().__init__(message)


class NetworkUnreachableError(NetworkError):
    """All attempts failed at the transport level (timeout, refused, DNS)."""

    def __init__(self, message: str, *, url: str = "", attempts: int = 0) -> None:
        self.attempts = attempts
        super().__init__(message, url=url)


class RequestCancelledError(NetworkError):
    """The caller's cancellation signal fired before a response arrived.

    Distinct from :class:`NetworkUnreachableError` so callers can tell
    "gave up waiting" apart from "server truly unreachable".
    """


class RemoteRejectedError(CareerForgeError):
    """The API answered a write with a 4xx status.

    Client errors are neither retried nor queued for replay.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        url: str = "",
        body: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        self.body = body
        super().__init__(message)
