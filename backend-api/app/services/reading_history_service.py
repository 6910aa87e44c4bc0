"""
읽기 기록 서비스
"""

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from typing import List, Optional
import logging
import uuid

from app.core.database import utcnow
from app.models.novel import Novel
from app.models.reading_history import ReadingHistory

logger = logging.getLogger(__name__)


def calculate_progress(chapter_number: int, total_chapters: int) -> float:
    """읽은 회차 번호 / 전체 회차 수 (최대 100%)"""
    if not total_chapters or total_chapters <= 0:
        return 0.0
    return min(100.0, chapter_number / total_chapters * 100)


async def _apply(
    db: AsyncSession,
    user_id: uuid.UUID,
    novel_id: uuid.UUID,
    chapter_id: uuid.UUID,
    progress: float,
) -> ReadingHistory:
    history = (await db.execute(
        select(ReadingHistory).where(ReadingHistory.user_id == user_id, ReadingHistory.novel_id == novel_id)
    )).scalar_one_or_none()
    if history is None:
        history = ReadingHistory(
            user_id=user_id,
            novel_id=novel_id,
            total_reading_time=0,
        )
        db.add(history)
    history.last_chapter_id = chapter_id
    history.reading_progress = progress
    history.last_read_at = utcnow()
    # 읽을 때마다 1분 가산
    history.total_reading_time = (history.total_reading_time or 0) + 1
    await db.commit()
    return history


async def update_history(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: uuid.UUID,
    novel_id: uuid.UUID,
    chapter_id: uuid.UUID,
    chapter_number: int,
) -> Optional[ReadingHistory]:
    """
    (사용자, 소설) 기록 업서트.
    응답 이후에 실행되므로 요청 세션이 아닌 별도 세션을 연다.
    """
    async with session_factory() as db:
        total_chapters = (await db.execute(
            select(Novel.total_chapters).where(Novel.id == novel_id)
        )).scalar_one_or_none()
        if total_chapters is None:
            logger.warning(f"[history] 소설 {novel_id} 없음, 기록 생략")
            return None
        progress = calculate_progress(chapter_number, total_chapters)
        try:
            return await _apply(db, user_id, novel_id, chapter_id, progress)
        except IntegrityError:
            # 같은 소설을 동시에 처음 읽은 경우: 먼저 생긴 기록을 갱신
            await db.rollback()
            return await _apply(db, user_id, novel_id, chapter_id, progress)


async def get_reading_history(
    db: AsyncSession,
    user_id: uuid.UUID,
    skip: int = 0,
    limit: int = 20,
) -> List[ReadingHistory]:
    result = await db.execute(
        select(ReadingHistory)
        .options(selectinload(ReadingHistory.novel), selectinload(ReadingHistory.last_chapter))
        .where(ReadingHistory.user_id == user_id)
        .order_by(ReadingHistory.last_read_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


async def delete_reading_history(db: AsyncSession, user_id: uuid.UUID, novel_id: uuid.UUID) -> bool:
    result = await db.execute(
        delete(ReadingHistory).where(ReadingHistory.user_id == user_id, ReadingHistory.novel_id == novel_id)
    )
    await db.commit()
    return (result.rowcount or 0) > 0
