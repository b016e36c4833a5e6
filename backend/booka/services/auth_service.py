"""Authentication flows: register, login, refresh rotation and logout."""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from booka.auth.jwt import create_token_pair, decode_token, hash_token
from booka.auth.passwords import hash_password, verify_password
from booka.config import settings
from booka.exceptions import AccountInactive, AuthenticationError, InvalidToken
from booka.models.refresh_token import RefreshToken
from booka.models.user import User
from booka.services.user_service import create_user, find_user_by_email

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Compared against when the email is unknown. Hashed once, at import.
_DUMMY_HASH = hash_password(uuid.uuid4().hex)


async def issue_tokens(db: AsyncSession, user: User) -> dict[str, str]:
    """Mint a token pair and record the refresh token."""
    tokens = create_token_pair(str(user.id))
    db.add(
        RefreshToken(
            user_id=user.id,
            token_hash=hash_token(tokens["refresh_token"]),
            expires_at=_utcnow() + timedelta(days=settings.jwt_refresh_token_expire_days),
        )
    )
    await db.flush()
    return tokens


async def register(db: AsyncSession, email: str, password: str, name: str) -> tuple[User, dict[str, str]]:
    """Create an account and sign it in."""
    user = await create_user(db, email=email, password=password, name=name)
    tokens = await issue_tokens(db, user)
    return user, tokens


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """Check credentials in roughly constant time.

    A bcrypt comparison always runs, against a throwaway hash when the email
    is unknown, so response time does not reveal which emails exist.

    Raises:
        AuthenticationError: Unknown email or wrong password (same message).
        AccountInactive: Correct credentials on a deactivated account.
    """
    user = await find_user_by_email(db, email)
    hashed = user.hashed_password if user is not None else _DUMMY_HASH
    password_ok = verify_password(password, hashed)

    if user is None or not password_ok:
        raise AuthenticationError()
    if not user.is_active:
        raise AccountInactive()
    return user


async def rotate_refresh_token(db: AsyncSession, refresh_token: str) -> dict[str, str]:
    """Exchange a refresh token for a new pair, invalidating the old one.

    The stored row is claimed with a single DELETE, so of two concurrent
    rotations of the same token only one succeeds.

    Raises:
        InvalidToken: Bad signature, wrong type, unknown, reused or expired
            token, or the owning user is missing or inactive.
    """
    try:
        payload = decode_token(refresh_token)
    except JWTError:
        raise InvalidToken() from None

    if payload.get("type") != "refresh":
        raise InvalidToken("Invalid token type")

    try:
        user_id = uuid.UUID(payload.get("sub") or "")
    except ValueError:
        raise InvalidToken("Invalid token payload") from None

    result = await db.execute(
        delete(RefreshToken).where(
            RefreshToken.token_hash == hash_token(refresh_token),
            RefreshToken.user_id == user_id,
            RefreshToken.expires_at > _utcnow(),
        )
    )
    if result.rowcount == 0:
        logger.warning("Rejected unknown or already-rotated refresh token for user %s", user_id)
        raise InvalidToken()

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise InvalidToken("User not found or inactive")

    return await issue_tokens(db, user)


async def logout(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Revoke every refresh token the user holds. Returns how many were removed."""
    result = await db.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
    logger.info("Revoked %d refresh token(s) for user %s", result.rowcount, user_id)
    return result.rowcount
