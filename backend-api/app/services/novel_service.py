"""
Novel 관련 서비스
"""

from sqlalchemy import select, func, cast, or_, String
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Tuple
import logging
import uuid

from app.core.exceptions import NotFoundError, PermissionDeniedError
from app.models.novel import Novel, NovelStatus
from app.models.user import User
from app.schemas.novel import NovelCreate, NovelUpdate
from app.services.aggregate_service import AggregateRecomputer
from app.services.chapter_service import bulk_delete_chapters
from app.services.lifecycle_service import ContentLifecycleCoordinator

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "latest": Novel.updated_at,
    "popular": Novel.readers,
    "words": Novel.word_count,
}


async def get_novel_by_id(db: AsyncSession, novel_id: uuid.UUID) -> Optional[Novel]:
    """Novel ID로 조회"""
    return await db.get(Novel, novel_id)


async def get_novels(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 20,
    sort: str = "latest",
    category: Optional[str] = None,
) -> Tuple[List[Novel], int]:
    """Novel 목록 조회 (페이지네이션)"""
    conditions = []
    if category:
        conditions.append(cast(Novel.categories, String).like(f'%"{category}"%'))

    total = (await db.execute(select(func.count(Novel.id)).where(*conditions))).scalar_one()
    order_col = _SORT_COLUMNS.get(sort, Novel.updated_at)
    result = await db.execute(
        select(Novel)
        .where(*conditions)
        .order_by(order_col.desc(), Novel.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), int(total)


async def search_novels(
    db: AsyncSession,
    keyword: str,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[Novel], int]:
    """제목/필명/태그 검색 (인기순)"""
    pattern = f"%{keyword.strip()}%"
    conditions = [
        or_(
            Novel.title.ilike(pattern),
            Novel.author_name.ilike(pattern),
            cast(Novel.tags, String).ilike(pattern),
        )
    ]
    total = (await db.execute(select(func.count(Novel.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(Novel)
        .where(*conditions)
        .order_by(Novel.readers.desc(), Novel.updated_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all(), int(total)


async def get_popular_novels(db: AsyncSession, limit: int = 10) -> List[Novel]:
    """독자 수 → 보관 수 순"""
    result = await db.execute(
        select(Novel)
        .order_by(Novel.readers.desc(), Novel.collections.desc(), Novel.updated_at.desc())
        .limit(limit)
    )
    return result.scalars().all()


async def get_latest_novels(db: AsyncSession, limit: int = 10) -> List[Novel]:
    """최근 회차가 올라온 순 (회차가 없으면 생성 시각)"""
    active_at = func.coalesce(Novel.last_active_at, Novel.created_at)
    result = await db.execute(
        select(Novel)
        .order_by(active_at.desc(), Novel.created_at.desc())
        .limit(limit)
    )
    return result.scalars().all()


async def get_novels_by_creator(db: AsyncSession, user_id: uuid.UUID) -> List[Novel]:
    result = await db.execute(
        select(Novel).where(Novel.creator_id == user_id).order_by(Novel.updated_at.desc())
    )
    return result.scalars().all()


async def get_owned_novel(db: AsyncSession, novel_id: uuid.UUID, user: User) -> Novel:
    """작가 본인 소설만 반환"""
    novel = await db.get(Novel, novel_id)
    if novel is None:
        raise NotFoundError("소설을 찾을 수 없습니다")
    if novel.creator_id != user.id:
        raise PermissionDeniedError("권한이 없습니다")
    return novel


async def create_novel(db: AsyncSession, user: User, data: NovelCreate) -> Novel:
    """소설 생성. 통계 필드는 0에서 시작한다."""
    novel = Novel(
        creator_id=user.id,
        title=data.title,
        author_name=data.author_name,
        cover_url=data.cover_url,
        short_description=data.short_description,
        long_description=data.long_description,
        categories=data.categories,
        tags=data.tags,
        status=data.status,
        word_count=0,
        total_chapters=0,
        readers=0,
    )
    db.add(novel)
    await db.commit()
    await db.refresh(novel)
    logger.info(f"[novel] 생성 id={novel.id} creator={user.id}")
    return novel


async def update_novel(db: AsyncSession, novel: Novel, data: NovelUpdate) -> Novel:
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(novel, field, value)
    await db.commit()
    await db.refresh(novel)
    return novel


async def change_novel_status(
    db: AsyncSession,
    lifecycle: ContentLifecycleCoordinator,
    novel: Novel,
    new_status: str,
) -> Tuple[Novel, int]:
    """연재 상태 변경. (소설, 번외 해제 건수) 반환."""
    new_status = NovelStatus(new_status).value
    old_status = novel.status
    if old_status == new_status:
        return novel, 0

    novel.status = new_status
    await db.commit()
    cleared = await lifecycle.on_novel_status_changed(novel.id, old_status, new_status)
    await db.refresh(novel)
    logger.info(f"[novel] 상태 변경 id={novel.id} {old_status} → {new_status}")
    return novel, cleared


async def delete_novel(
    db: AsyncSession,
    lifecycle: ContentLifecycleCoordinator,
    recomputer: AggregateRecomputer,
    novel: Novel,
) -> None:
    """회차 일괄 삭제 → 소설 삭제 → 작가 통계 재계산"""
    novel_id, creator_id = novel.id, novel.creator_id
    await bulk_delete_chapters(db, lifecycle, novel_id)

    await db.delete(novel)
    await db.commit()
    logger.info(f"[novel] 삭제 id={novel_id}")

    if creator_id is not None:
        try:
            await recomputer.recompute_author(creator_id)
        except Exception:
            logger.exception(f"[novel] 작가 {creator_id} 통계 재계산 실패")
