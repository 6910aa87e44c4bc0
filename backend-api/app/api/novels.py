"""
소설 열람 API (독자용)
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from typing import List, Optional
import asyncio
import logging
import secrets
import uuid

from app.api.deps import get_client_ip, get_session_factory, get_stats_services
from app.core.background import spawn
from app.core.config import settings
from app.core.database import get_db
from app.core.security import get_current_user_optional
from app.models.user import User
from app.schemas.novel import (
    ChapterBrief,
    ChapterListItem,
    ChapterNavigation,
    ChapterReadResponse,
    ChapterResponse,
    NovelBrief,
    NovelDetail,
    NovelListResponse,
    NovelResponse,
)
from app.services import chapter_service, novel_service
from app.services.reading_history_service import update_history
from app.services.stats import StatsServices
from app.services.view_dedup_service import ViewIdentity

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=NovelListResponse)
async def list_novels(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    sort: str = Query("latest", pattern="^(latest|popular|words)$"),
    category: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    novels, total = await novel_service.get_novels(db, skip=skip, limit=limit, sort=sort, category=category)
    return NovelListResponse(
        novels=[NovelResponse.model_validate(n) for n in novels],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/search", response_model=NovelListResponse)
async def search_novels(
    q: str = Query(..., min_length=1, max_length=100),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """제목/필명/태그 검색"""
    novels, total = await novel_service.search_novels(db, q, skip=skip, limit=limit)
    return NovelListResponse(
        novels=[NovelResponse.model_validate(n) for n in novels],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/popular", response_model=List[NovelResponse])
async def popular_novels(limit: int = Query(10, ge=1, le=50), db: AsyncSession = Depends(get_db)):
    return await novel_service.get_popular_novels(db, limit=limit)


@router.get("/latest", response_model=List[NovelResponse])
async def latest_novels(limit: int = Query(10, ge=1, le=50), db: AsyncSession = Depends(get_db)):
    return await novel_service.get_latest_novels(db, limit=limit)


@router.get("/author/{author_id}", response_model=List[NovelResponse])
async def novels_by_author(author_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """작가의 작품 목록 (최근 수정순)"""
    return await novel_service.get_novels_by_creator(db, author_id)


@router.get("/{novel_id}", response_model=NovelDetail)
async def get_novel(novel_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    novel = await novel_service.get_novel_by_id(db, novel_id)
    if not novel:
        raise HTTPException(status_code=404, detail="소설을 찾을 수 없습니다")
    latest = None
    if novel.latest_chapter_id:
        latest = await chapter_service.get_chapter(db, novel.latest_chapter_id)
    return NovelDetail(
        **NovelResponse.model_validate(novel).model_dump(),
        latest_chapter=ChapterBrief.model_validate(latest) if latest else None,
    )


@router.get("/{novel_id}/chapters", response_model=List[ChapterListItem])
async def list_chapters(novel_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    novel = await novel_service.get_novel_by_id(db, novel_id)
    if not novel:
        raise HTTPException(status_code=404, detail="소설을 찾을 수 없습니다")
    return await chapter_service.list_chapters(db, novel_id)


@router.get("/{novel_id}/chapters/{chapter_number}", response_model=ChapterReadResponse)
async def read_chapter(
    novel_id: uuid.UUID,
    chapter_number: int,
    request: Request,
    response: Response,
    extra: Optional[bool] = Query(None, description="번외편 여부 (생략 시 일반 회차 우선)"),
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
    stats: StatsServices = Depends(get_stats_services),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """회차 본문 조회. 조회수 집계/읽기 기록 실패는 응답에 영향을 주지 않는다."""
    novel = await novel_service.get_novel_by_id(db, novel_id)
    if not novel:
        raise HTTPException(status_code=404, detail="소설을 찾을 수 없습니다")
    chapter = await chapter_service.get_chapter_by_number(db, novel_id, chapter_number, is_extra=extra)
    if not chapter:
        raise HTTPException(status_code=404, detail="회차를 찾을 수 없습니다")
    if chapter.is_premium and current_user is None:
        raise HTTPException(status_code=403, detail="유료 회차는 로그인 후 이용할 수 있습니다")

    # 비로그인 독자는 clientId 쿠키로 식별 (없으면 발급)
    client_id = request.cookies.get(settings.CLIENT_ID_COOKIE_NAME)
    if current_user is None and not client_id:
        client_id = secrets.token_hex(16)
        response.set_cookie(
            key=settings.CLIENT_ID_COOKIE_NAME,
            value=client_id,
            max_age=settings.CLIENT_ID_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
        )
    identity = ViewIdentity.resolve(
        user_id=current_user.id if current_user else None,
        client_id=client_id,
        ip_address=get_client_ip(request),
    )

    chapter_data = ChapterResponse.model_validate(chapter)
    prev_ch, next_ch = await chapter_service.get_adjacent_chapters(db, chapter)

    # 클라이언트가 연결을 끊어도 집계 작업은 끝까지 실행
    count_task = spawn(
        stats.view_counter.record_chapter_view(chapter.id, identity),
        name=f"view-count:{chapter.id}",
    )
    snapshot = await asyncio.shield(count_task)
    if snapshot is not None:
        chapter_data = chapter_data.model_copy(update={"view_count": snapshot.view_count})

    if current_user is not None:
        spawn(
            update_history(session_factory, current_user.id, novel.id, chapter.id, chapter.chapter_number),
            name=f"reading-history:{current_user.id}:{novel.id}",
        )

    return ChapterReadResponse(
        novel=NovelBrief.model_validate(novel),
        chapter=chapter_data,
        navigation=ChapterNavigation(
            prev=ChapterBrief.model_validate(prev_ch) if prev_ch else None,
            next=ChapterBrief.model_validate(next_ch) if next_ch else None,
        ),
    )
