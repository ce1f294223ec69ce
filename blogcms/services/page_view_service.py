"""
Page-view service — records one view per call and answers the analytics
queries (total count, time-bucketed counts).

Bucketing happens in Python after a single SELECT so the hour/day/month
boundaries follow ``settings.TIMEZONE`` identically on every database
backend.  Stored timestamps are UTC; naive values coming back from SQLite
are read as UTC.
"""
import logging
import uuid
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blogcms.config import settings
from blogcms.device import DeviceInfo
from blogcms.exceptions import NotFound, ValidationFailure
from blogcms.models import Article, PageView
from blogcms.schemas import ArticleRef, PageViewBucket, PageViewCount

logger = logging.getLogger(__name__)

INTERVALS = ("hourly", "daily", "monthly")


def _reference_tz() -> tzinfo:
    if settings.TIMEZONE.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(settings.TIMEZONE)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _match_clauses(
    article_id: uuid.UUID | None,
    start_at: datetime | None,
    end_at: datetime | None,
) -> list:
    clauses = []
    if article_id is not None:
        clauses.append(PageView.article_id == article_id)
    if start_at is not None:
        clauses.append(PageView.viewed_at >= _as_utc(start_at))
    if end_at is not None:
        clauses.append(PageView.viewed_at <= _as_utc(end_at))
    return clauses


def bucket_key(viewed_at: datetime, interval: str, tz: tzinfo | None = None) -> tuple[int, ...]:
    local = _as_utc(viewed_at).astimezone(tz or _reference_tz())
    if interval == "hourly":
        return (local.year, local.month, local.day, local.hour)
    if interval == "daily":
        return (local.year, local.month, local.day)
    if interval == "monthly":
        return (local.year, local.month)
    raise ValidationFailure("Invalid interval.")


def format_bucket(key: tuple[int, ...]) -> str:
    """``YYYY-MM-DD HH:00``, ``YYYY-MM-DD`` or ``YYYY-MM`` depending on *key*."""
    label = f"{key[0]:04d}-{key[1]:02d}"
    if len(key) >= 3:
        label += f"-{key[2]:02d}"
    if len(key) == 4:
        label += f" {key[3]:02d}:00"
    return label


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def record_page_view(
    db: AsyncSession,
    article_id: uuid.UUID,
    ip_address: str,
    user_agent: str | None,
    device: DeviceInfo,
) -> dict:
    """
    Insert one view of *article_id*.

    Only live, published articles can be viewed; anything else is
    reported as missing and nothing is written.
    """
    q = select(Article).where(
        Article.id == article_id,
        Article.deleted.is_(False),
        Article.status == "published",
    )
    article = (await db.execute(q)).scalar_one_or_none()
    if article is None:
        raise NotFound("Article not found")

    view = PageView(
        article_id=article.id,
        ip_address=ip_address,
        user_agent=user_agent or None,
        device_type=device.type,
        device_os=device.os,
        device_browser=device.browser,
    )
    db.add(view)
    await db.flush()
    logger.debug("Recorded view of %s from %s (%s)", article.id, ip_address, device.type)
    return {"id": str(article.id), "title": article.title, "status": article.status}


async def count_page_views(
    db: AsyncSession,
    article_id: uuid.UUID | None = None,
    start_at: datetime | None = None,
    end_at: datetime | None = None,
) -> PageViewCount:
    """Total matching views plus each distinct article they point at."""
    clauses = _match_clauses(article_id, start_at, end_at)

    count_q = (
        select(func.count())
        .select_from(PageView)
        .join(Article, Article.id == PageView.article_id)
        .where(*clauses)
    )
    total: int = (await db.execute(count_q)).scalar_one()
    if total == 0:
        return PageViewCount(count=0, articles=[])

    articles_q = (
        select(Article.id, Article.title, Article.status)
        .join(PageView, PageView.article_id == Article.id)
        .where(*clauses)
        .distinct()
        .order_by(Article.title, Article.id)
    )
    rows = (await db.execute(articles_q)).all()
    return PageViewCount(
        count=total,
        articles=[ArticleRef(id=r.id, title=r.title, status=r.status) for r in rows],
    )


async def aggregate_page_views(
    db: AsyncSession,
    interval: str = "daily",
    article_id: uuid.UUID | None = None,
    start_at: datetime | None = None,
    end_at: datetime | None = None,
) -> list[PageViewBucket]:
    """
    Group matching views into calendar buckets, oldest bucket first.

    Each bucket carries its label, its view count and the distinct
    articles viewed within it.
    """
    if interval not in INTERVALS:
        raise ValidationFailure("Invalid interval.")

    q = (
        select(PageView.viewed_at, Article.id, Article.title, Article.status)
        .join(Article, Article.id == PageView.article_id)
        .where(*_match_clauses(article_id, start_at, end_at))
    )
    rows = (await db.execute(q)).all()

    tz = _reference_tz()
    counts: dict[tuple[int, ...], int] = {}
    articles: dict[tuple[int, ...], dict[uuid.UUID, ArticleRef]] = {}
    for viewed_at, a_id, title, status in rows:
        key = bucket_key(viewed_at, interval, tz)
        counts[key] = counts.get(key, 0) + 1
        articles.setdefault(key, {}).setdefault(
            a_id, ArticleRef(id=a_id, title=title, status=status)
        )

    return [
        PageViewBucket(
            date=format_bucket(key),
            count=counts[key],
            articles=list(articles[key].values()),
        )
        for key in sorted(counts)
    ]
