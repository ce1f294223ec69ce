"""
Authorization decisions for user profiles and articles.

The ``can_*`` helpers are pure: they look only at the caller id and the
already-loaded target, and return a ``Decision``.  ``enforce`` turns a
negative decision into the matching application error.
"""
import enum
import uuid

from blogcms.exceptions import Forbidden, NotFound, Unauthenticated
from blogcms.models import Article


class Decision(enum.Enum):
    ALLOW = "allow"
    DENY_UNAUTHENTICATED = "deny_unauthenticated"
    DENY_FORBIDDEN = "deny_forbidden"
    TARGET_NOT_FOUND = "target_not_found"


def can_modify_user(caller_id: uuid.UUID | None, target_user_id: uuid.UUID) -> Decision:
    if caller_id is None:
        return Decision.DENY_UNAUTHENTICATED
    if caller_id != target_user_id:
        return Decision.DENY_FORBIDDEN
    return Decision.ALLOW


def can_modify_article(caller_id: uuid.UUID | None, article: Article | None) -> Decision:
    if caller_id is None:
        return Decision.DENY_UNAUTHENTICATED
    if article is None or article.deleted:
        return Decision.TARGET_NOT_FOUND
    if article.author_id != caller_id:
        return Decision.DENY_FORBIDDEN
    return Decision.ALLOW


def can_read_article(caller_id: uuid.UUID | None, article: Article | None) -> Decision:
    """Drafts are readable by their author only; published articles by anyone."""
    if article is None or article.deleted:
        return Decision.TARGET_NOT_FOUND
    if article.status == "draft" and article.author_id != caller_id:
        return Decision.DENY_FORBIDDEN
    return Decision.ALLOW


def enforce(decision: Decision, resource: str = "Resource") -> None:
    if decision is Decision.ALLOW:
        return
    if decision is Decision.DENY_UNAUTHENTICATED:
        raise Unauthenticated()
    if decision is Decision.DENY_FORBIDDEN:
        raise Forbidden()
    raise NotFound(f"{resource} not found")
