"""
Article service — visibility rules, pagination and CRUD for the Article
aggregate.

Design notes
------------
- Which articles a caller may list is decided by ``build_visibility_filter``;
  the count query and the page query share the resulting clauses so the
  pagination metadata always describes the rows actually returned.
- Soft-deleted rows stay in the table (``deleted`` flag, status forced to
  ``"deleted"``) and every read path filters them out explicitly.
- ``author_id`` is a plain reference, so the author's name is joined in
  per query rather than loaded through a relationship.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import logging
import math
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import and_, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from blogcms.authorization import can_read_article, enforce
from blogcms.exceptions import Conflict, ValidationFailure
from blogcms.models import ARTICLE_STATUSES, DELETED_STATUS, Article, Tag, User
from blogcms.sanitizers import sanitize_article
from blogcms.schemas import ArticleCreate, ArticleUpdate, PaginatedResponse, PaginationMeta

logger = logging.getLogger(__name__)

DUPLICATE_TITLE_MESSAGE = "An article with this title already exists."

# Upsert-capable INSERT constructs for the supported backends.
_TAG_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}

# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------


def parse_status_filter(statuses: Iterable[str] | None) -> list[str] | None:
    """
    Normalise the ``status`` query values.

    Returns None when no filter was given (blank values are ignored) and
    the recognised statuses otherwise.  Raises ``ValidationFailure`` when
    values were given but none of them is a known status.
    """
    if statuses is None:
        return None
    given = [s for s in statuses if s]
    if not given:
        return None
    valid = [s for s in dict.fromkeys(given) if s in ARTICLE_STATUSES]
    if not valid:
        raise ValidationFailure('Status must be either "published" or "draft"')
    return valid


def build_visibility_filter(
    caller_id: uuid.UUID | None,
    statuses: list[str] | None,
    author_id: uuid.UUID | None = None,
) -> list | None:
    """
    Return the WHERE clauses for listing articles as *caller_id*, or None
    when the caller can see nothing (an anonymous caller asking only for
    drafts).
    """
    clauses = [Article.deleted.is_(False)]
    if author_id is not None:
        clauses.append(Article.author_id == author_id)

    if caller_id is None:
        if not statuses:
            clauses.append(Article.status == "published")
        else:
            allowed = [s for s in statuses if s != "draft"]
            if not allowed:
                return None
            clauses.append(Article.status.in_(allowed))
    elif not statuses:
        # Own drafts are deliberately left out of the default listing.
        clauses.append(Article.status == "published")
    elif "draft" in statuses:
        conditions = [and_(Article.status == "draft", Article.author_id == caller_id)]
        others = [s for s in statuses if s != "draft"]
        if others:
            conditions.append(Article.status.in_(others))
        clauses.append(or_(*conditions))
    else:
        clauses.append(Article.status.in_(statuses))
    return clauses


def _pagination_meta(page: int, limit: int, total: int) -> PaginationMeta:
    total_pages = math.ceil(total / limit)
    return PaginationMeta(
        current_page=page,
        total_pages=total_pages,
        total_items=total,
        items_per_page=limit,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )


# ---------------------------------------------------------------------------
# Loading helpers
# ---------------------------------------------------------------------------

async def _load_article(db: AsyncSession, article_id: uuid.UUID) -> tuple[Article, str | None] | None:
    """Return a live article with its tags and its author's name."""
    q = (
        select(Article, User.name)
        .outerjoin(User, User.id == Article.author_id)
        .where(Article.id == article_id, Article.deleted.is_(False))
        .options(selectinload(Article.tags))
        .execution_options(populate_existing=True)
    )
    row = (await db.execute(q)).first()
    if row is None:
        return None
    return row[0], row[1]


async def _title_taken(
    db: AsyncSession,
    author_id: uuid.UUID,
    title: str,
    exclude_id: uuid.UUID | None = None,
) -> bool:
    q = select(Article.id).where(
        Article.author_id == author_id,
        Article.title == title,
        Article.deleted.is_(False),
    )
    if exclude_id is not None:
        q = q.where(Article.id != exclude_id)
    return (await db.execute(q.limit(1))).first() is not None


async def _find_tag(db: AsyncSession, name: str) -> Tag | None:
    result = await db.execute(select(Tag).where(Tag.name == name))
    return result.scalar_one_or_none()


async def _insert_tag(db: AsyncSession, name: str) -> Tag:
    # ON CONFLICT DO NOTHING: a concurrent request may have created the same
    # tag since the lookup, and the unique index must not fail this one.
    insert = _TAG_INSERTS[db.get_bind().dialect.name]
    await db.execute(insert(Tag).values(name=name).on_conflict_do_nothing(index_elements=[Tag.name]))
    return await _find_tag(db, name)


async def _resolve_tags(db: AsyncSession, tag_names: list[str]) -> list[Tag]:
    """
    Return Tag ORM instances for each name in *tag_names*, creating any
    that do not yet exist.  All inserts run within the caller's
    transaction.
    """
    tags: list[Tag] = []
    for name in dict.fromkeys(tag_names):
        tag = await _find_tag(db, name)
        if tag is None:
            tag = await _insert_tag(db, name)
        tags.append(tag)
    return tags


async def _flush_or_conflict(db: AsyncSession) -> None:
    # The partial unique index catches a concurrent create that slipped
    # past the pre-check.
    try:
        await db.flush()
    except IntegrityError as exc:
        logger.info("Article write rejected by unique index: %s", exc.orig)
        raise Conflict(DUPLICATE_TITLE_MESSAGE) from exc


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def list_articles(
    db: AsyncSession,
    caller_id: uuid.UUID | None = None,
    statuses: list[str] | None = None,
    author_id: uuid.UUID | None = None,
    page: int = 1,
    limit: int = 10,
) -> PaginatedResponse:
    """
    Return one page of the articles visible to *caller_id*.

    Two SQL statements are issued:
    1. COUNT over the visibility filter.
    2. SELECT with the author's name joined in, newest first, with
       LIMIT/OFFSET; tags are loaded in one extra SELECT.
    """
    clauses = build_visibility_filter(caller_id, parse_status_filter(statuses), author_id)
    if clauses is None:
        return PaginatedResponse(data=[], pagination=_pagination_meta(page, limit, 0))

    # Articles whose author no longer exists are left out of both queries.
    count_q = (
        select(func.count())
        .select_from(Article)
        .join(User, User.id == Article.author_id)
        .where(*clauses)
    )
    total: int = (await db.execute(count_q)).scalar_one()

    rows_q = (
        select(Article, User.name)
        .join(User, User.id == Article.author_id)
        .where(*clauses)
        .options(selectinload(Article.tags))
        .order_by(Article.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = (await db.execute(rows_q)).all()

    return PaginatedResponse(
        data=[sanitize_article(article, name, preview=True) for article, name in rows],
        pagination=_pagination_meta(page, limit, total),
    )


async def get_article(
    db: AsyncSession, article_id: uuid.UUID, caller_id: uuid.UUID | None = None
) -> dict:
    """
    Return the full article (content untruncated) if *caller_id* may read it.

    Raises ``NotFound`` for missing or soft-deleted articles and
    ``Forbidden`` for someone else's draft.
    """
    loaded = await _load_article(db, article_id)
    article, author_name = loaded if loaded else (None, None)
    enforce(can_read_article(caller_id, article), "Article")
    return sanitize_article(article, author_name)


async def create_article(db: AsyncSession, author: User, data: ArticleCreate) -> dict:
    if await _title_taken(db, author.id, data.title):
        raise Conflict(DUPLICATE_TITLE_MESSAGE)

    article = Article(
        title=data.title,
        content=data.content,
        status=data.status,
        author_id=author.id,
    )
    article.tags = await _resolve_tags(db, data.tags) if data.tags else []

    db.add(article)
    await _flush_or_conflict(db)
    logger.info("Article %s created by %s", article.id, author.id)
    return sanitize_article(article, author.name)


async def update_article(
    db: AsyncSession, article: Article, author: User, data: ArticleUpdate
) -> dict:
    """
    Apply the fields set in *data* to *article*, which the caller has
    already been checked to own.

    Only fields explicitly set in the request payload are modified
    (``model_dump(exclude_unset=True)``); explicit nulls are ignored.
    """
    update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    tags_data: list[str] | None = update_data.pop("tags", None)

    if "title" in update_data and await _title_taken(
        db, author.id, update_data["title"], exclude_id=article.id
    ):
        raise Conflict(DUPLICATE_TITLE_MESSAGE)

    article, _ = await _load_article(db, article.id)
    for field, value in update_data.items():
        setattr(article, field, value)
    if tags_data is not None:
        article.tags = await _resolve_tags(db, tags_data)
    article.updated_at = datetime.now(timezone.utc)

    await _flush_or_conflict(db)
    return sanitize_article(article, author.name)


async def delete_article(db: AsyncSession, article: Article) -> None:
    """Soft-delete *article*: the row stays but no read path returns it."""
    article.deleted = True
    article.deleted_at = datetime.now(timezone.utc)
    article.status = DELETED_STATUS
    await db.flush()
    logger.info("Article %s soft-deleted", article.id)
