"""JWT token creation and verification for access and refresh tokens."""

import hashlib
import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt

from booka.config import settings


def _encode(data: dict, token_type: str, lifetime: timedelta) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    to_encode.update(
        {
            "exp": now + lifetime,
            "iat": now,
            "type": token_type,
            # Unique per token, so two pairs minted in the same second differ
            "jti": uuid.uuid4().hex,
        }
    )
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a short-lived access token.

    Args:
        data: Payload data. Must include ``sub`` (user UUID as string).
        expires_delta: Custom expiration duration. Defaults to
            ``settings.jwt_access_token_expire_minutes`` minutes.

    Returns:
        Encoded JWT string.
    """
    return _encode(data, "access", expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))


def create_refresh_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a long-lived refresh token.

    Args:
        data: Payload data. Must include ``sub`` (user UUID as string).
        expires_delta: Custom expiration duration. Defaults to
            ``settings.jwt_refresh_token_expire_days`` days.

    Returns:
        Encoded JWT string.
    """
    return _encode(data, "refresh", expires_delta or timedelta(days=settings.jwt_refresh_token_expire_days))


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Args:
        token: Encoded JWT string.

    Returns:
        Decoded payload dictionary.

    Raises:
        jose.JWTError: If the token is invalid, expired, or malformed.
    """
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def create_token_pair(user_id: str) -> dict[str, str]:
    """Create both access and refresh tokens for a user.

    Args:
        user_id: The user's UUID as a string.

    Returns:
        Dictionary with ``access_token``, ``refresh_token``, and ``token_type``.
    """
    payload = {"sub": user_id}
    return {
        "access_token": create_access_token(payload),
        "refresh_token": create_refresh_token(payload),
        "token_type": "bearer",
    }


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a token, used as its storage key."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
