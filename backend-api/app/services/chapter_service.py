"""
회차 CRUD 서비스

변경을 커밋한 뒤 ContentLifecycleCoordinator 훅을 명시적으로 호출한다.
"""

from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Tuple
import logging
import re
import uuid

from app.core.exceptions import ChapterNumberConflictError, InvalidOperationError, NotFoundError
from app.models.chapter import Chapter
from app.models.novel import Novel, NovelStatus
from app.schemas.novel import ChapterCreate, ChapterUpdate
from app.services.lifecycle_service import ContentLifecycleCoordinator, assert_chapter_number_available

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def count_words(content: Optional[str]) -> int:
    """공백을 제외한 글자 수"""
    if not content:
        return 0
    return len(_WHITESPACE_RE.sub("", content))


async def next_chapter_number(db: AsyncSession, novel_id: uuid.UUID, is_extra: bool) -> int:
    """
    다음 회차 번호.
    일반 회차는 마지막 일반 회차 + 1, 번외는 전체 마지막 회차 + 1.
    """
    stmt = select(func.max(Chapter.chapter_number)).where(Chapter.novel_id == novel_id)
    if not is_extra:
        stmt = stmt.where(Chapter.is_extra.is_(False))
    last = (await db.execute(stmt)).scalar_one_or_none()
    return (last or 0) + 1


async def get_chapter(db: AsyncSession, chapter_id: uuid.UUID) -> Optional[Chapter]:
    return await db.get(Chapter, chapter_id)


async def get_chapter_by_number(
    db: AsyncSession,
    novel_id: uuid.UUID,
    chapter_number: int,
    is_extra: Optional[bool] = None,
) -> Optional[Chapter]:
    """번호로 회차 조회. 번외 여부를 주지 않으면 일반 회차를 우선한다."""
    stmt = select(Chapter).where(Chapter.novel_id == novel_id, Chapter.chapter_number == chapter_number)
    if is_extra is not None:
        stmt = stmt.where(Chapter.is_extra.is_(is_extra))
    stmt = stmt.order_by(Chapter.is_extra.asc()).limit(1)
    return (await db.execute(stmt)).scalar_one_or_none()


async def list_chapters(db: AsyncSession, novel_id: uuid.UUID) -> List[Chapter]:
    result = await db.execute(
        select(Chapter)
        .where(Chapter.novel_id == novel_id)
        .order_by(Chapter.is_extra.asc(), Chapter.chapter_number.asc())
    )
    return result.scalars().all()


async def get_adjacent_chapters(db: AsyncSession, chapter: Chapter) -> Tuple[Optional[Chapter], Optional[Chapter]]:
    """같은 구분(일반/번외) 안에서 이전/다음 회차"""
    base = select(Chapter).where(Chapter.novel_id == chapter.novel_id, Chapter.is_extra.is_(chapter.is_extra))
    prev_ch = (await db.execute(
        base.where(Chapter.chapter_number < chapter.chapter_number)
        .order_by(Chapter.chapter_number.desc())
        .limit(1)
    )).scalar_one_or_none()
    next_ch = (await db.execute(
        base.where(Chapter.chapter_number > chapter.chapter_number)
        .order_by(Chapter.chapter_number.asc())
        .limit(1)
    )).scalar_one_or_none()
    return prev_ch, next_ch


async def _commit_or_conflict(db: AsyncSession, chapter_number: int, is_extra: bool) -> None:
    try:
        await db.commit()
    except IntegrityError:
        # 사전 확인 이후 동시 요청이 같은 번호를 선점한 경우
        await db.rollback()
        raise ChapterNumberConflictError(chapter_number, is_extra)


async def create_chapter(
    db: AsyncSession,
    lifecycle: ContentLifecycleCoordinator,
    novel: Novel,
    data: ChapterCreate,
) -> Chapter:
    """회차 생성 후 최신 회차/통계 갱신"""
    if data.is_extra is None:
        # 완결 소설에 추가되는 회차는 기본적으로 번외
        is_extra = novel.status == NovelStatus.COMPLETED.value
    else:
        is_extra = data.is_extra

    if data.chapter_number is not None:
        chapter_number = data.chapter_number
    else:
        chapter_number = await next_chapter_number(db, novel.id, is_extra)

    await assert_chapter_number_available(db, novel.id, chapter_number, is_extra)

    chapter = Chapter(
        novel_id=novel.id,
        chapter_number=chapter_number,
        title=data.title,
        content=data.content,
        word_count=count_words(data.content),
        is_extra=is_extra,
        is_premium=data.is_premium,
        price=data.price if data.is_premium else 0,
    )
    db.add(chapter)
    await _commit_or_conflict(db, chapter_number, is_extra)
    await db.refresh(chapter)

    logger.info(f"[chapter] 생성 novel={novel.id} number={chapter_number} extra={is_extra}")
    await lifecycle.on_chapter_created(chapter.id)
    return chapter


async def update_chapter(
    db: AsyncSession,
    lifecycle: ContentLifecycleCoordinator,
    chapter: Chapter,
    data: ChapterUpdate,
) -> Chapter:
    """회차 수정. 번호/구분이 바뀌면 중복을 다시 확인한다."""
    novel = await db.get(Novel, chapter.novel_id)
    if novel is None:
        raise NotFoundError("소설을 찾을 수 없습니다")

    if novel.status == NovelStatus.COMPLETED.value and data.is_extra is False and chapter.is_extra:
        raise InvalidOperationError("완결된 소설의 번외편은 일반 회차로 바꿀 수 없습니다")

    previous_number = chapter.chapter_number
    target_number = data.chapter_number if data.chapter_number is not None else chapter.chapter_number
    target_extra = data.is_extra if data.is_extra is not None else chapter.is_extra
    if target_number != chapter.chapter_number or target_extra != chapter.is_extra:
        await assert_chapter_number_available(
            db, chapter.novel_id, target_number, target_extra, exclude_chapter_id=chapter.id
        )

    if data.title is not None:
        chapter.title = data.title
    if data.content is not None:
        chapter.content = data.content
        chapter.word_count = count_words(data.content)
    chapter.chapter_number = target_number
    chapter.is_extra = target_extra

    is_premium = data.is_premium if data.is_premium is not None else chapter.is_premium
    price = data.price if data.price is not None else chapter.price
    chapter.is_premium = is_premium
    chapter.price = price if is_premium else 0

    await _commit_or_conflict(db, target_number, target_extra)
    await db.refresh(chapter)

    await lifecycle.on_chapter_edited(chapter.id, previous_number=previous_number)
    return chapter


async def delete_chapter(
    db: AsyncSession,
    lifecycle: ContentLifecycleCoordinator,
    chapter: Chapter,
) -> None:
    novel_id, chapter_id = chapter.novel_id, chapter.id
    await db.delete(chapter)
    await db.commit()
    logger.info(f"[chapter] 삭제 novel={novel_id} chapter={chapter_id}")
    await lifecycle.on_chapter_deleted(novel_id, chapter_id)


async def bulk_delete_chapters(
    db: AsyncSession,
    lifecycle: ContentLifecycleCoordinator,
    novel_id: uuid.UUID,
    chapter_ids: Optional[List[uuid.UUID]] = None,
) -> int:
    """회차 일괄 삭제 (chapter_ids 가 없으면 전부). 삭제 건수 반환."""
    stmt = delete(Chapter).where(Chapter.novel_id == novel_id)
    if chapter_ids is not None:
        if not chapter_ids:
            return 0
        stmt = stmt.where(Chapter.id.in_(chapter_ids))
    result = await db.execute(stmt.execution_options(synchronize_session=False))
    await db.commit()

    deleted = result.rowcount or 0
    logger.info(f"[chapter] 일괄 삭제 novel={novel_id} count={deleted}")
    await lifecycle.on_chapters_bulk_deleted(novel_id)
    return deleted
