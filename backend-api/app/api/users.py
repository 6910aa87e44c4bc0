"""
사용자 API: 읽기 기록, 계정 삭제
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from app.api.deps import get_stats_services
from app.core.config import settings
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.user import ReadingHistoryItem, ReadingHistoryListResponse, UserResponse
from app.services.reading_history_service import delete_reading_history, get_reading_history
from app.services.stats import StatsServices
from app.services.user_service import delete_account

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/me/reading-history", response_model=ReadingHistoryListResponse)
async def list_reading_history(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """최근 읽은 순"""
    items = await get_reading_history(db, current_user.id, skip=skip, limit=limit)
    return ReadingHistoryListResponse(
        items=[ReadingHistoryItem.model_validate(h) for h in items],
        skip=skip,
        limit=limit,
    )


@router.delete("/me/reading-history/{novel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_reading_history(
    novel_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deleted = await delete_reading_history(db, current_user.id, novel_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="읽기 기록을 찾을 수 없습니다")


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_account(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stats: StatsServices = Depends(get_stats_services),
):
    """계정 삭제 (작품은 익명 작가로 남는다)"""
    await delete_account(db, stats.recomputer, current_user, settings.ANONYMOUS_AUTHOR_NAME)
