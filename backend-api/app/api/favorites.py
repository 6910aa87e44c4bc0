"""
보관함 API
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from app.api.deps import get_stats_services
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.favorite import (
    FavoriteCreate,
    FavoriteListResponse,
    FavoriteResponse,
    FavoriteStatusResponse,
    FavoriteUpdate,
    FavoriteWithNovel,
)
from app.services import favorite_service
from app.services.stats import StatsServices

router = APIRouter()


@router.get("/", response_model=FavoriteListResponse)
async def list_favorites(
    group: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """내 보관함 (최근 담은 순)"""
    items, total = await favorite_service.list_favorites(db, current_user.id, group=group, skip=skip, limit=limit)
    return FavoriteListResponse(
        items=[FavoriteWithNovel.model_validate(f) for f in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/{novel_id}/status", response_model=FavoriteStatusResponse)
async def favorite_status(
    novel_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    favorite = await favorite_service.get_favorite_for_novel(db, current_user.id, novel_id)
    return FavoriteStatusResponse(is_favorite=favorite is not None, favorite_id=favorite.id if favorite else None)


@router.post("/", response_model=FavoriteResponse, status_code=status.HTTP_201_CREATED)
async def add_favorite(
    payload: FavoriteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stats: StatsServices = Depends(get_stats_services),
):
    return await favorite_service.add_favorite(
        db, stats.recomputer, current_user.id, payload.novel_id, group=payload.group
    )


@router.put("/{favorite_id}", response_model=FavoriteResponse)
async def update_favorite(
    favorite_id: uuid.UUID,
    payload: FavoriteUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    favorite = await favorite_service.get_favorite(db, current_user.id, favorite_id)
    return await favorite_service.update_favorite(db, favorite, payload)


@router.delete("/{target_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_favorite(
    target_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stats: StatsServices = Depends(get_stats_services),
):
    """보관 ID 또는 소설 ID로 삭제"""
    favorite = await favorite_service.find_favorite(db, current_user.id, target_id)
    if favorite is None:
        raise HTTPException(status_code=404, detail="보관 기록을 찾을 수 없습니다")
    await favorite_service.remove_favorite(db, stats.recomputer, favorite)
