"""careerforge - Local-first data sync client for the CareerForge API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("careerforge")
except PackageNotFoundError:
    __version__ = "0+local"
from careerforge.cache import LocalCache, MemoryBackend, PendingQueue, SqliteBackend
from careerforge.client import CareerForgeClient
from careerforge.config import CareerForgeConfig
from careerforge.connectivity import ConnectivityMonitor
from careerforge.exceptions import (
    AuthenticationRequiredError,
    CareerForgeConfigError,
    CareerForgeError,
    EncodingError,
    NetworkError,
    NetworkUnreachableError,
    RemoteRejectedError,
    RequestCancelledError,
    StorageError,
    TokenRefreshError,
)
from careerforge.gateway import NetworkGateway
from careerforge.models import (
    AuthTokens,
    CachedEntry,
    EntrySource,
    HttpMethod,
    HttpResponse,
    PendingMutation,
    RetryPolicy,
    UserIdentity,
)
from careerforge.sync import ReplayReport, SaveOutcome, SyncCoordinator

__all__ = [
    "__version__",
    "AuthTokens",
    "AuthenticationRequiredError",
    "CachedEntry",
    "CareerForgeClient",
    "CareerForgeConfig",
    "CareerForgeConfigError",
    "CareerForgeError",
    "ConnectivityMonitor",
    "EncodingError",
    "EntrySource",
    "HttpMethod",
    "HttpResponse",
    "LocalCache",
    "MemoryBackend",
    "NetworkError",
    "NetworkGateway",
    "NetworkUnreachableError",
    "PendingMutation",
    "PendingQueue",
    "RemoteRejectedError",
    "ReplayReport",
    "RequestCancelledError",
    "RetryPolicy",
    "SaveOutcome",
    "SqliteBackend",
    "StorageError",
    "SyncCoordinator",
    "TokenRefreshError",
    "UserIdentity",
]
