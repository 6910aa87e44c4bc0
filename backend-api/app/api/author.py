"""
작가 API: 소설/회차 관리와 작가 통계
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import uuid

from app.api.deps import get_stats_services
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.chapter import Chapter
from app.models.user import User
from app.schemas.novel import (
    ChapterBulkDelete,
    ChapterBulkDeleteResponse,
    ChapterCreate,
    ChapterResponse,
    ChapterUpdate,
    NovelCreate,
    NovelResponse,
    NovelStatusUpdate,
    NovelUpdate,
)
from app.schemas.stats import AuthorStatsResponse
from app.services import chapter_service, novel_service
from app.services.stats import StatsServices
from app.services.user_service import get_author_dashboard

router = APIRouter()


async def _get_owned_chapter(db: AsyncSession, chapter_id: uuid.UUID, user: User) -> Chapter:
    chapter = await chapter_service.get_chapter(db, chapter_id)
    if not chapter:
        raise HTTPException(status_code=404, detail="회차를 찾을 수 없습니다")
    # 소유 확인 (없거나 남의 소설이면 예외)
    await novel_service.get_owned_novel(db, chapter.novel_id, user)
    return chapter


# ---- 소설 ----
@router.get("/novels", response_model=List[NovelResponse])
async def list_my_novels(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await novel_service.get_novels_by_creator(db, current_user.id)


@router.post("/novels", response_model=NovelResponse, status_code=status.HTTP_201_CREATED)
async def create_novel(
    payload: NovelCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await novel_service.create_novel(db, current_user, payload)


@router.put("/novels/{novel_id}", response_model=NovelResponse)
async def update_novel(
    novel_id: uuid.UUID,
    payload: NovelUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    novel = await novel_service.get_owned_novel(db, novel_id, current_user)
    return await novel_service.update_novel(db, novel, payload)


@router.patch("/novels/{novel_id}/status", response_model=NovelResponse)
async def update_novel_status(
    novel_id: uuid.UUID,
    payload: NovelStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stats: StatsServices = Depends(get_stats_services),
):
    novel = await novel_service.get_owned_novel(db, novel_id, current_user)
    novel, _ = await novel_service.change_novel_status(db, stats.lifecycle, novel, payload.status)
    return novel


@router.delete("/novels/{novel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_novel(
    novel_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stats: StatsServices = Depends(get_stats_services),
):
    novel = await novel_service.get_owned_novel(db, novel_id, current_user)
    await novel_service.delete_novel(db, stats.lifecycle, stats.recomputer, novel)


# ---- 회차 ----
@router.post("/novels/{novel_id}/chapters", response_model=ChapterResponse, status_code=status.HTTP_201_CREATED)
async def create_chapter(
    novel_id: uuid.UUID,
    payload: ChapterCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stats: StatsServices = Depends(get_stats_services),
):
    novel = await novel_service.get_owned_novel(db, novel_id, current_user)
    return await chapter_service.create_chapter(db, stats.lifecycle, novel, payload)


@router.delete("/novels/{novel_id}/chapters", response_model=ChapterBulkDeleteResponse)
async def bulk_delete_chapters(
    novel_id: uuid.UUID,
    payload: Optional[ChapterBulkDelete] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stats: StatsServices = Depends(get_stats_services),
):
    novel = await novel_service.get_owned_novel(db, novel_id, current_user)
    chapter_ids = payload.chapter_ids if payload else None
    deleted = await chapter_service.bulk_delete_chapters(db, stats.lifecycle, novel.id, chapter_ids)
    return ChapterBulkDeleteResponse(deleted=deleted)


@router.put("/chapters/{chapter_id}", response_model=ChapterResponse)
async def update_chapter(
    chapter_id: uuid.UUID,
    payload: ChapterUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stats: StatsServices = Depends(get_stats_services),
):
    chapter = await _get_owned_chapter(db, chapter_id, current_user)
    return await chapter_service.update_chapter(db, stats.lifecycle, chapter, payload)


@router.delete("/chapters/{chapter_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chapter(
    chapter_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stats: StatsServices = Depends(get_stats_services),
):
    chapter = await _get_owned_chapter(db, chapter_id, current_user)
    await chapter_service.delete_chapter(db, stats.lifecycle, chapter)


# ---- 통계 ----
@router.get("/stats", response_model=AuthorStatsResponse)
async def get_author_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stats: StatsServices = Depends(get_stats_services),
):
    """작가 통계 (요청 시 재계산)"""
    return await get_author_dashboard(db, stats.recomputer, current_user)
