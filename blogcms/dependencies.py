import logging
import uuid

import jwt
from fastapi import Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from blogcms.authorization import can_modify_article, can_modify_user, enforce
from blogcms.cache import RevocationSet
from blogcms.config import settings
from blogcms.database import get_db
from blogcms.exceptions import Unauthenticated
from blogcms.models import Article, User
from blogcms.security import decode_access_token, extract_bearer_token

logger = logging.getLogger(__name__)


class PaginationParams:
    """
    Reusable FastAPI dependency that parses pagination query parameters.

    Out-of-range values are clamped rather than rejected: ``page`` to at
    least 1 and ``limit`` to ``[1, settings.MAX_PAGE_SIZE]``.
    """

    def __init__(
        self,
        page: int = Query(1, description="Page number (1-based)."),
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            description="Number of items returned per page (max 100).",
        ),
    ) -> None:
        self.page = max(1, page)
        self.limit = min(settings.MAX_PAGE_SIZE, max(1, limit))

    @property
    def offset(self) -> int:
        """SQL OFFSET value computed from the current page and limit."""
        return (self.page - 1) * self.limit


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

def get_revocations(request: Request) -> RevocationSet:
    return request.app.state.revocations


def get_bearer_token(authorization: str | None = Header(default=None)) -> str | None:
    return extract_bearer_token(authorization)


async def _load_token_user(db: AsyncSession, token: str) -> User | None:
    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(str(payload.get("sub")))
    except (jwt.InvalidTokenError, ValueError):
        return None
    return await db.get(User, user_id)


async def get_optional_user(
    token: str | None = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
    revocations: RevocationSet = Depends(get_revocations),
) -> User | None:
    """Resolve the caller if a usable token was presented, else None."""
    if not token or await revocations.is_revoked(token):
        return None
    return await _load_token_user(db, token)


async def get_current_user(
    token: str | None = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
    revocations: RevocationSet = Depends(get_revocations),
) -> User:
    if not token:
        raise Unauthenticated("Access denied. No token provided.")
    if await revocations.is_revoked(token):
        raise Unauthenticated("Token has been invalidated")
    user = await _load_token_user(db, token)
    if user is None:
        raise Unauthenticated("Invalid token")
    return user


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------

async def require_self(
    user_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
) -> User:
    enforce(can_modify_user(current_user.id, user_id), "User")
    return current_user


async def require_article_owner(
    article_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Article:
    """Load the article at *article_id* and check the caller owns it."""
    article = await db.get(Article, article_id)
    enforce(can_modify_article(current_user.id, article), "Article")
    return article
