"""Authentication token and identity models."""

from __future__ import annotations

import time
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from careerforge.models._base import CareerForgeModel


class UserIdentity(CareerForgeModel):
    """Claims read from a bearer token payload.

    Parameters
    ----------
    user_id : str
        The authenticated user's ID. Tokens minted by the CareerForge
        server carry it as ``id``; older clients used ``userId``.
    exp : float or None
        Expiry, seconds since epoch.
    raw : dict
        Full decoded claim set.
    """

    user_id: str = Field(validation_alias=AliasChoices("userId", "user_id", "id", "sub"))
    exp: float | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, value: Any) -> str:
        if isinstance(value, bool) or value is None:
            raise ValueError("user id claim missing")
        user_id = str(value).strip()
        if not user_id:
            raise ValueError("user id claim must be non-empty")
        return user_id

    def seconds_until_expiry(self, now: float | None = None) -> float | None:
        """Seconds left before ``exp``; negative when already expired."""
        if self.exp is None:
            return None
        current = time.time() if now is None else now
        return self.exp - current


class AuthTokens(CareerForgeModel):
    """Credentials issued by the auth service.

    Parameters
    ----------
    token : str
        Bearer access token.
    refresh_token : str or None
        Long-lived token exchanged at ``/api/auth/refresh``.
    username : str or None
        Display name returned at login.
    """

    token: str
    refresh_token: str | None = None
    username: str | None = None

    @field_validator("token")
    @classmethod
    def _token_non_empty(cls, value: str) -> str:
        token = value.strip()
        if not token:
            raise ValueError("token must be non-empty")
        return token
