"""
Password hashing and identity tokens.

Passwords are hashed with bcrypt; identity tokens are HS256 JWTs carrying
the user id in ``sub`` and an expiry ``JWT_EXPIRES_DAYS`` after issuance.
"""
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from blogcms.config import settings


def hash_password(raw_password: str) -> str:
    """Hash a raw password using bcrypt and return the utf-8 string."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(raw_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(raw_password: str, password_hash: str) -> bool:
    """Verify *raw_password* against a stored bcrypt hash."""
    if not password_hash:
        return False
    return bcrypt.checkpw(raw_password.encode("utf-8"), password_hash.encode("utf-8"))


def create_access_token(user_id: uuid.UUID) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=settings.JWT_EXPIRES_DAYS)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and validate *token*.

    Raises ``jwt.InvalidTokenError`` (including ``ExpiredSignatureError``)
    when the signature or expiry check fails.
    """
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the raw token from an ``Authorization`` header value.

    The ``Bearer `` prefix is optional; an empty header yields None.
    """
    if not authorization:
        return None
    token = authorization[7:] if authorization.startswith("Bearer ") else authorization
    return token.strip() or None


def remaining_lifetime(token: str) -> int | None:
    """Seconds until *token* expires, or None when it cannot be verified."""
    try:
        payload = decode_access_token(token)
    except jwt.InvalidTokenError:
        return None
    if "exp" not in payload:
        return None
    remaining = int(payload["exp"] - datetime.now(timezone.utc).timestamp())
    return max(remaining, 1)
