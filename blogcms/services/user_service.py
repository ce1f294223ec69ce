"""
User service — registration, login and profile CRUD for the User aggregate.

Username uniqueness is enforced twice: a pre-check gives a clean error in
the common case and the unique index on ``users.username`` catches
concurrent registrations, which are reported the same way.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blogcms.exceptions import Conflict, NotFound, ValidationFailure
from blogcms.models import User
from blogcms.schemas import UserCreate, UserLogin, UserUpdate
from blogcms.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

USERNAME_TAKEN_MESSAGE = "Username already exists"


async def _username_taken(
    db: AsyncSession, username: str, exclude_id: uuid.UUID | None = None
) -> bool:
    q = select(User.id).where(User.username == username)
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    return (await db.execute(q.limit(1))).first() is not None


async def _flush_or_conflict(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as exc:
        raise Conflict(USERNAME_TAKEN_MESSAGE) from exc


async def get_users(db: AsyncSession) -> list[User]:
    """Return all users ordered by creation date (newest first)."""
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    return list(result.scalars().all())


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def register(db: AsyncSession, data: UserCreate) -> tuple[User, str]:
    """Create a user and return it with a freshly issued token."""
    if await _username_taken(db, data.username):
        raise Conflict(USERNAME_TAKEN_MESSAGE)

    user = User(
        name=data.name,
        username=data.username,
        password_hash=hash_password(data.password),
    )
    db.add(user)
    await _flush_or_conflict(db)
    logger.info("Registered user %s (%s)", user.id, user.username)
    return user, create_access_token(user.id)


async def login(db: AsyncSession, data: UserLogin) -> tuple[User, str]:
    result = await db.execute(select(User).where(User.username == data.username))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(data.password, user.password_hash):
        raise ValidationFailure("Invalid credentials")
    return user, create_access_token(user.id)


async def update_user(db: AsyncSession, user: User, data: UserUpdate) -> User:
    update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    if "username" in update_data and await _username_taken(
        db, update_data["username"], exclude_id=user.id
    ):
        raise Conflict(USERNAME_TAKEN_MESSAGE)

    for field, value in update_data.items():
        setattr(user, field, value)
    user.updated_at = datetime.now(timezone.utc)
    await _flush_or_conflict(db)
    return user


async def delete_user(db: AsyncSession, user: User) -> None:
    """Hard-delete *user*.  Their articles and page views are left in place."""
    await db.delete(user)
    await db.flush()
    logger.info("Deleted user %s", user.id)
