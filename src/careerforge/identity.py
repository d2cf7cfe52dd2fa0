"""Bearer-token credentials and the user identity derived from them.

Claims are decoded without verifying the signature. They are read for
client-side purposes only (scoping cache keys, scheduling refreshes) and
are never a trust boundary: the server validates every request itself.
"""

from __future__ import annotations

import logging

import jwt
from pydantic import ValidationError

from careerforge.exceptions import AuthenticationRequiredError
from careerforge.models.token import AuthTokens, UserIdentity

_logger = logging.getLogger(__name__)


def decode_claims(token: str) -> UserIdentity:
    """Read the identity claims from *token* without signature verification.

    Raises :class:`AuthenticationRequiredError` when the token is not a
    JWT or carries no user id claim.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise AuthenticationRequiredError(f"Bearer token cannot be decoded: {exc}") from exc

    if not isinstance(claims, dict):
        raise AuthenticationRequiredError("Bearer token payload is not an object")
    try:
        return UserIdentity.model_validate({**claims, "raw": claims})
    except ValidationError as exc:
        raise AuthenticationRequiredError("Bearer token carries no usable user id") from exc


class CredentialStore:
    """In-memory holder of the current :class:`AuthTokens`."""

    def __init__(self, tokens: AuthTokens | None = None) -> None:
        self._tokens = tokens

    @property
    def tokens(self) -> AuthTokens | None:
        return self._tokens

    @property
    def token(self) -> str | None:
        return self._tokens.token if self._tokens is not None else None

    @property
    def refresh_token(self) -> str | None:
        return self._tokens.refresh_token if self._tokens is not None else None

    @property
    def username(self) -> str | None:
        return self._tokens.username if self._tokens is not None else None

    def set_tokens(self, token: str, refresh_token: str | None = None, username: str | None = None) -> AuthTokens:
        self._tokens = AuthTokens(token=token, refresh_token=refresh_token, username=username)
        return self._tokens

    def update_access_token(self, token: str) -> AuthTokens:
        """Swap the access token, keeping refresh token and username."""
        if self._tokens is None:
            return self.set_tokens(token)
        self._tokens = self._tokens.model_copy(update={"token": AuthTokens(token=token).token})
        return self._tokens

    def clear(self) -> None:
        self._tokens = None

    def is_logged_in(self) -> bool:
        return self._tokens is not None

    def identity(self) -> UserIdentity:
        """Decode the current token or raise :class:`AuthenticationRequiredError`."""
        token = self.token
        if not token:
            raise AuthenticationRequiredError("User not authenticated")
        return decode_claims(token)

    def user_id(self) -> str | None:
        try:
            return self.identity().user_id
        except AuthenticationRequiredError:
            _logger.debug("No decodable user identity", exc_info=True)
            return None

    def expires_at(self) -> float | None:
        """Epoch seconds at which the access token expires, if known.

        Raises :class:`AuthenticationRequiredError` when a token is present
        but cannot be decoded.
        """
        if not self.token:
            return None
        return self.identity().exp

    def auth_headers(self) -> dict[str, str]:
        token = self.token
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}
