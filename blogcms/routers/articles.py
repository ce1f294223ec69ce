import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blogcms.database import get_db
from blogcms.dependencies import (
    PaginationParams,
    get_current_user,
    get_optional_user,
    require_article_owner,
)
from blogcms.models import Article, User
from blogcms.schemas import ArticleCreate, ArticleUpdate, PaginatedResponse
from blogcms.services import article_service

router = APIRouter(prefix="/articles", tags=["articles"])

@router.get("", response_model=PaginatedResponse)
async def list_articles(
    status: list[str] | None = Query(None),
    author: uuid.UUID | None = Query(None),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    return await article_service.list_articles(
        db,
        caller_id=viewer.id if viewer else None,
        statuses=status,
        author_id=author,
        page=pagination.page,
        limit=pagination.limit,
    )

@router.get("/{article_id}")
async def get_article(
    article_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    return await article_service.get_article(db, article_id, viewer.id if viewer else None)

@router.post("", status_code=201)
async def create_article(
    data: ArticleCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.create_article(db, current_user, data)
    return {"message": "Article created successfully", "data": {"article": article}}

@router.patch("/{article_id}")
async def update_article(
    data: ArticleUpdate,
    article: Article = Depends(require_article_owner),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await article_service.update_article(db, article, current_user, data)
    return {"message": "Article updated successfully", "data": {"article": updated}}

@router.delete("/{article_id}")
async def delete_article(
    article: Article = Depends(require_article_owner),
    db: AsyncSession = Depends(get_db),
):
    await article_service.delete_article(db, article)
    return {"message": "Article deleted successfully"}
