"""
Public projections of the ORM entities.

Nothing internal (password hashes, soft-delete flags, raw author ids) is
allowed past these helpers; routers only ever return their output.
"""
import traceback
from datetime import datetime, timezone

from blogcms.models import Article, User

LIST_CONTENT_PREVIEW = 50


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def sanitize_user(user: User) -> dict:
    """Full projection: returned to the profile owner and on register/login."""
    return {
        "id": str(user.id),
        "name": user.name,
        "username": user.username,
        "createdAt": _iso(user.created_at),
        "updatedAt": _iso(user.updated_at),
    }


def sanitize_user_minimal(user: User) -> dict:
    return {
        "id": str(user.id),
        "name": user.name,
        "username": user.username,
    }


def sanitize_users(users: list[User]) -> list[dict]:
    return [sanitize_user(u) for u in users]


def truncate_content(content: str) -> str:
    if len(content) >= LIST_CONTENT_PREVIEW:
        return content[:LIST_CONTENT_PREVIEW] + "..."
    return content


def sanitize_article(article: Article, author_name: str | None, *, preview: bool = False) -> dict:
    """
    Serialise *article*.  ``author`` is the author's display name, or None
    when the author could not be resolved.  With *preview* the content is
    cut down for list views.
    """
    return {
        "id": str(article.id),
        "title": article.title,
        "content": truncate_content(article.content) if preview else article.content,
        "status": article.status,
        "author": author_name,
        "tags": [t.name for t in article.tags],
        "createdAt": _iso(article.created_at),
        "updatedAt": _iso(article.updated_at),
    }


def sanitize_error(exc: BaseException, is_development: bool = False) -> dict:
    data = {"error": "Server error"}
    if is_development:
        data["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return data
