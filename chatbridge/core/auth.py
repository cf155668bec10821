"""Signed per-user credentials shared between the API and widgets."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt

from .config import ChatBridgeSettings
from .exceptions import AuthenticationError, ConfigurationError

_ALGORITHM = "HS256"
_SCHEMES = ("CustomBearer", "Bearer")


def _secret(settings: ChatBridgeSettings) -> str:
    if settings.jwt_secret is None:
        raise ConfigurationError("JWT_SECRET is not configured")
    return settings.jwt_secret.get_secret_value()


def issue_user_token(user_id: str, settings: ChatBridgeSettings) -> str:
    """Wrap the user id in an HS256 JWT that expires after `jwt_ttl_seconds`."""

    expires_at = datetime.now(tz=timezone.utc) + timedelta(seconds=settings.jwt_ttl_seconds)
    return jwt.encode({"userId": user_id, "exp": expires_at}, _secret(settings), algorithm=_ALGORITHM)


def verify_user_token(token: str, settings: ChatBridgeSettings) -> str:
    """Return the user id carried by `token` or raise AuthenticationError."""

    try:
        claims = jwt.decode(token, _secret(settings), algorithms=[_ALGORITHM])
    except jwt.PyJWTError as exc:
        raise AuthenticationError(f"Invalid credential: {exc}") from exc

    user_id = claims.get("userId") or claims.get("sub")
    if not user_id:
        raise AuthenticationError("Credential carries no user id")
    return str(user_id)


def extract_bearer_token(header: str | None) -> str:
    """Strip a `CustomBearer` or `Bearer` scheme from an Authorization header."""

    if not header:
        raise AuthenticationError("Not authenticated")
    scheme, _, token = header.strip().partition(" ")
    if scheme not in _SCHEMES or not token.strip():
        raise AuthenticationError("Unsupported authorization scheme")
    return token.strip()
