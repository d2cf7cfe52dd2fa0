"""Helpers for safe debug logging.

Requests carry bearer tokens in headers and refresh tokens in bodies, and
queued mutations persist both shapes. Everything that is logged at DEBUG
goes through :func:`redact_for_log` first.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "authorization",
        "cookie",
        "setcookie",
        "password",
        "token",
        "accesstoken",
        "refreshtoken",
    }
)


def _is_sensitive(key: str) -> bool:
    # "Refresh-Token", "refresh_token" and "refreshToken" all normalise to "refreshtoken".
    return key.lower().replace("-", "").replace("_", "") in _SENSITIVE_KEYS


def redact_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 10:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}...<truncated>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if _is_sensitive(key):
                redacted[key] = "<redacted>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return repr(value)


def redact_body(body: str | bytes | None, *, max_string: int = 256) -> Any:
    """Redact a serialized request body, parsing it as JSON when possible."""
    if body is None:
        return None
    text = body.decode("utf-8", errors="replace") if isinstance(body, (bytes, bytearray)) else body
    try:
        parsed = json.loads(text)
    except ValueError:
        return redact_for_log(text, max_string=max_string)
    return redact_for_log(parsed, max_string=max_string)
