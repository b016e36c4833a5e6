"""User directory: lookups and profile changes.

Password hashes stay inside this module and ``auth_service``; callers get
``User`` rows and serialize them through ``UserResponse``, which has no
hash field.
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booka.auth.passwords import hash_password
from booka.exceptions import EmailAlreadyRegistered, UserNotFound
from booka.models.user import User, UserRole

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def find_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> User:
    """Return the user or raise ``UserNotFound``."""
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFound()
    return user


async def find_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Case-insensitive lookup. Returns None when absent."""
    result = await db.execute(select(User).where(func.lower(User.email) == normalize_email(email)))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    name: str,
    role: str = UserRole.GUEST,
) -> User:
    """Create a user with a bcrypt-hashed password.

    Raises:
        EmailAlreadyRegistered: If the email is taken.
    """
    if await find_user_by_email(db, email) is not None:
        raise EmailAlreadyRegistered()

    user = User(
        email=normalize_email(email),
        hashed_password=hash_password(password),
        name=name,
        role=role,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    logger.info("Created user %s", user.id)
    return user


async def update_user(
    db: AsyncSession,
    user: User,
    name: str | None = None,
    email: str | None = None,
) -> User:
    """Apply a partial profile update.

    Raises:
        EmailAlreadyRegistered: If ``email`` belongs to another account.
    """
    if email is not None:
        email = normalize_email(email)
        if email != user.email:
            existing = await find_user_by_email(db, email)
            if existing is not None and existing.id != user.id:
                raise EmailAlreadyRegistered("Email already in use")
            user.email = email
    if name is not None:
        user.name = name

    await db.flush()
    await db.refresh(user)
    return user
