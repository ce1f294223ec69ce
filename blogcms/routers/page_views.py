import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from blogcms.database import get_db
from blogcms.dependencies import get_current_user
from blogcms.device import get_device_and_ip
from blogcms.schemas import PageViewBucket, PageViewCount, PageViewCreate
from blogcms.services import page_view_service

router = APIRouter(prefix="/page-views", tags=["page-views"])

@router.post("", status_code=201)
async def track_page_view(data: PageViewCreate, request: Request, db: AsyncSession = Depends(get_db)):
    ip_address, user_agent, device = get_device_and_ip(request)
    article = await page_view_service.record_page_view(
        db, data.article, ip_address, user_agent, device
    )
    return {"message": "Page view tracked successfully", "data": article}

@router.get("/count", response_model=PageViewCount, dependencies=[Depends(get_current_user)])
async def get_page_view_count(
    article: uuid.UUID | None = Query(None),
    start_at: datetime | None = Query(None, alias="startAt"),
    end_at: datetime | None = Query(None, alias="endAt"),
    db: AsyncSession = Depends(get_db),
):
    return await page_view_service.count_page_views(db, article, start_at, end_at)

@router.get(
    "/aggregate-date",
    response_model=list[PageViewBucket],
    dependencies=[Depends(get_current_user)],
)
async def get_aggregated_page_views(
    interval: str = Query("daily"),
    article: uuid.UUID | None = Query(None),
    start_at: datetime | None = Query(None, alias="startAt"),
    end_at: datetime | None = Query(None, alias="endAt"),
    db: AsyncSession = Depends(get_db),
):
    return await page_view_service.aggregate_page_views(db, interval, article, start_at, end_at)
