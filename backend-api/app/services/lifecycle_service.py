"""
콘텐츠 수명주기 조정자

회차/소설 변경이 커밋된 뒤 호출되어 최신 회차 포인터와 파생 통계를 맞춘다.
포인터 갱신을 먼저 커밋하고 통계를 재계산한다. 재계산 실패는 로그만 남기고
변경 자체는 되돌리지 않는다(누적 오차는 ReconciliationJob 이 복구).
"""

from __future__ import annotations

from typing import Optional
import logging
import uuid

from sqlalchemy import select, update, func
from sqlalchemy.orm import aliased
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import ChapterNumberConflictError
from app.models.chapter import Chapter
from app.models.novel import Novel, NovelStatus
from app.services.aggregate_service import AggregateRecomputer

logger = logging.getLogger(__name__)


async def assert_chapter_number_available(
    db: AsyncSession,
    novel_id: uuid.UUID,
    chapter_number: int,
    is_extra: bool,
    exclude_chapter_id: Optional[uuid.UUID] = None,
) -> None:
    """(소설, 번외 여부) 안에서 회차 번호가 비어 있는지 확인"""
    stmt = select(Chapter.id).where(
        Chapter.novel_id == novel_id,
        Chapter.chapter_number == chapter_number,
        Chapter.is_extra == is_extra,
    )
    if exclude_chapter_id is not None:
        stmt = stmt.where(Chapter.id != exclude_chapter_id)
    if (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None:
        raise ChapterNumberConflictError(chapter_number, is_extra)


async def find_latest_chapter_id(db: AsyncSession, novel_id: uuid.UUID) -> Optional[uuid.UUID]:
    """회차 번호가 가장 큰 회차 (같은 번호면 나중에 만든 회차)"""
    return (await db.execute(
        select(Chapter.id)
        .where(Chapter.novel_id == novel_id)
        .order_by(Chapter.chapter_number.desc(), Chapter.created_at.desc())
        .limit(1)
    )).scalar_one_or_none()


class ContentLifecycleCoordinator:
    """회차/소설 변경 후처리"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        recomputer: AggregateRecomputer,
    ):
        self._session_factory = session_factory
        self._recomputer = recomputer

    async def refresh_latest_chapter(self, novel_id: uuid.UUID) -> Optional[uuid.UUID]:
        """최신 회차 포인터를 남은 회차 중 최대 번호로 재지정 (없으면 NULL)"""
        async with self._session_factory() as db:
            latest_id = await find_latest_chapter_id(db, novel_id)
            await db.execute(
                update(Novel)
                .where(Novel.id == novel_id, Novel.latest_chapter_id.is_distinct_from(latest_id))
                .values(latest_chapter_id=latest_id)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        return latest_id

    async def _recompute(self, novel_id: uuid.UUID, event: str) -> None:
        try:
            await self._recomputer.recompute_novel(novel_id)
        except Exception:
            logger.exception(f"[lifecycle] {event}: 소설 {novel_id} 통계 재계산 실패")

    async def on_chapter_created(self, chapter_id: uuid.UUID) -> None:
        """새 회차 번호가 현재 최신 회차 이상이면 포인터를 옮기고 통계 재계산"""
        novel_id = None
        try:
            async with self._session_factory() as db:
                chapter = await db.get(Chapter, chapter_id)
                if chapter is None:
                    logger.warning(f"[lifecycle] chapter_created: 회차 {chapter_id} 없음")
                    return
                novel_id = chapter.novel_id
                novel = await db.get(Novel, novel_id)
                if novel is None:
                    logger.warning(f"[lifecycle] chapter_created: 소설 {novel_id} 없음")
                    return

                current = await db.get(Chapter, novel.latest_chapter_id) if novel.latest_chapter_id else None
                if current is None or chapter.chapter_number >= current.chapter_number:
                    await db.execute(
                        update(Novel)
                        .where(Novel.id == novel_id)
                        .values(latest_chapter_id=chapter.id)
                        .execution_options(synchronize_session=False)
                    )
                    await db.commit()
        except Exception:
            logger.exception(f"[lifecycle] chapter_created: 회차 {chapter_id} 최신 회차 갱신 실패")
        if novel_id is not None:
            await self._recompute(novel_id, "chapter_created")

    async def on_chapter_edited(self, chapter_id: uuid.UUID, previous_number: Optional[int] = None) -> None:
        """본문/번호 수정 후처리. 번호가 바뀌었으면 최신 회차 포인터부터 다시 잡는다."""
        novel_id = None
        try:
            async with self._session_factory() as db:
                chapter = await db.get(Chapter, chapter_id)
                if chapter is None:
                    logger.warning(f"[lifecycle] chapter_edited: 회차 {chapter_id} 없음")
                    return
                novel_id = chapter.novel_id
                number_changed = previous_number is not None and previous_number != chapter.chapter_number
            if number_changed:
                await self.refresh_latest_chapter(novel_id)
        except Exception:
            logger.exception(f"[lifecycle] chapter_edited: 회차 {chapter_id} 최신 회차 갱신 실패")
        if novel_id is not None:
            await self._recompute(novel_id, "chapter_edited")

    async def on_chapter_deleted(self, novel_id: uuid.UUID, chapter_id: uuid.UUID) -> None:
        """삭제된 회차가 최신 회차였거나 포인터가 비었으면 재지정 후 재계산"""
        try:
            async with self._session_factory() as db:
                novel = await db.get(Novel, novel_id)
                if novel is None:
                    logger.warning(f"[lifecycle] chapter_deleted: 소설 {novel_id} 없음")
                    return
                pointer = novel.latest_chapter_id
                dangling = pointer is not None and await db.get(Chapter, pointer) is None
            if pointer is None or pointer == chapter_id or dangling:
                latest_id = await self.refresh_latest_chapter(novel_id)
                logger.info(f"[lifecycle] chapter_deleted: 소설 {novel_id} 최신 회차 → {latest_id}")
        except Exception:
            logger.exception(f"[lifecycle] chapter_deleted: 소설 {novel_id} 최신 회차 갱신 실패")
        await self._recompute(novel_id, "chapter_deleted")

    async def on_chapters_bulk_deleted(self, novel_id: uuid.UUID) -> None:
        """일괄 삭제 후: 남은 회차가 없으면 포인터 NULL, 있으면 최대 번호로"""
        try:
            async with self._session_factory() as db:
                if await db.get(Novel, novel_id) is None:
                    logger.warning(f"[lifecycle] chapters_bulk_deleted: 소설 {novel_id} 없음")
                    return
                remaining = (await db.execute(
                    select(func.count(Chapter.id)).where(Chapter.novel_id == novel_id)
                )).scalar_one()
            latest_id = await self.refresh_latest_chapter(novel_id)
            logger.info(
                f"[lifecycle] chapters_bulk_deleted: 소설 {novel_id} 남은 회차 {remaining}, 최신 회차 → {latest_id}"
            )
        except Exception:
            logger.exception(f"[lifecycle] chapters_bulk_deleted: 소설 {novel_id} 최신 회차 갱신 실패")
        await self._recompute(novel_id, "chapters_bulk_deleted")

    async def on_novel_status_changed(self, novel_id: uuid.UUID, old_status: str, new_status: str) -> int:
        """
        완결 → 연재중 전환 시 번외 표시 해제. 해제된 회차 수를 반환.

        같은 번호의 일반 회차가 이미 있으면 (소설, 번호, 번외) 유일성을 위해 번외로 남긴다.
        """
        if not (old_status == NovelStatus.COMPLETED.value and new_status == NovelStatus.ONGOING.value):
            return 0
        try:
            async with self._session_factory() as db:
                regular = aliased(Chapter)
                collides = (
                    select(regular.id)
                    .where(
                        regular.novel_id == Chapter.novel_id,
                        regular.chapter_number == Chapter.chapter_number,
                        regular.is_extra.is_(False),
                    )
                    .exists()
                )
                skipped = (await db.execute(
                    select(func.count(Chapter.id)).where(
                        Chapter.novel_id == novel_id, Chapter.is_extra.is_(True), collides
                    )
                )).scalar_one()
                result = await db.execute(
                    update(Chapter)
                    .where(Chapter.novel_id == novel_id, Chapter.is_extra.is_(True), ~collides)
                    .values(is_extra=False)
                    .execution_options(synchronize_session=False)
                )
                await db.commit()
        except Exception:
            logger.exception(f"[lifecycle] novel_status_changed: 소설 {novel_id} 번외 표시 해제 실패")
            return 0

        cleared = result.rowcount or 0
        if skipped:
            logger.warning(f"[lifecycle] 소설 {novel_id}: 번호가 겹치는 번외 {skipped}건은 번외로 유지")
        logger.info(f"[lifecycle] 소설 {novel_id} 완결 → 연재중, 번외 표시 해제 {cleared}건")
        return cleared
