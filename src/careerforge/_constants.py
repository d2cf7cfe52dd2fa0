"""Internal constants shared across the library."""

import re

DEFAULT_API_URL = "http://localhost:5000"
USER_AGENT = "careerforge-python/1.0"

# ------------------------------------------------------------------
# Retry / timeout defaults (seconds)
# ------------------------------------------------------------------

DEFAULT_MAX_RETRIES = 2
DEFAULT_INITIAL_DELAY = 1.0
DEFAULT_BACKOFF_FACTOR = 1.5
DEFAULT_BASE_TIMEOUT = 10.0
DEFAULT_TIMEOUT_INCREMENT = 5.0

# ------------------------------------------------------------------
# Token lifecycle (seconds)
# ------------------------------------------------------------------

#: Access tokens live for one hour; refresh well before that.
DEFAULT_TOKEN_REFRESH_INTERVAL = 45 * 60
#: Refresh immediately when the token expires within this window.
DEFAULT_TOKEN_EXPIRY_LEEWAY = 300.0

# ------------------------------------------------------------------
# Local cache layout
# ------------------------------------------------------------------

PENDING_STORE = "pendingRequests"
PENDING_QUEUE_KEY = "queue"
USER_PROFILE_STORE = "userProfile"
RESERVED_STORES: frozenset[str] = frozenset({PENDING_STORE})

STORE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

# ------------------------------------------------------------------
# API paths
# ------------------------------------------------------------------

HEALTH_PATH = "/api/health"
AUTH_REFRESH_PATH = "/api/auth/refresh"
AUTH_LOGOUT_PATH = "/api/auth/logout"
AUTH_VALIDATE_PATH = "/api/auth/validate"
CURRENT_USER_PATH = "/api/users/me"


def save_path(component_type: str) -> str:
    return f"/api/{component_type}/save"


def get_path(component_type: str) -> str:
    return f"/api/{component_type}/get"


def clear_path(component_type: str) -> str:
    return f"/api/{component_type}/clear"
