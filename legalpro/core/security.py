"""Security utilities for JWT session tokens."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from legalpro.core.config import settings


def create_session_token(user_id: UUID, role: str, token_version: int = 1) -> str:
    """
    Create signed session JWT.

    Always signs with the current secret (JWT_SECRET). Issuing tokens at login
    belongs to the auth service; this is used by internal tooling and tests.
    """
    payload = {
        "sub": str(user_id),
        "role": role,
        "token_version": token_version,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore
