"""
회차 조회수 집계

중복 방지 저장소가 허용한 조회만 원자적으로 +1 하고 소설 readers 를 갱신한다.
집계 실패는 읽기 요청을 막지 않는다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import utcnow
from app.models.chapter import Chapter
from app.models.novel import Novel
from app.services.aggregate_service import AggregateRecomputer
from app.services.view_dedup_service import ViewDedupStore, ViewIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChapterSnapshot:
    id: uuid.UUID
    novel_id: uuid.UUID
    chapter_number: int
    view_count: int
    counted: bool = False


class ViewCounter:
    """조회 1건 처리: 중복 확인 → 조회수 +1 → 소설 readers/활동 시각 갱신"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dedup_store: ViewDedupStore,
        recomputer: AggregateRecomputer,
    ):
        self._session_factory = session_factory
        self._dedup = dedup_store
        self._recomputer = recomputer

    async def _snapshot(self, chapter_id: uuid.UUID, counted: bool) -> Optional[ChapterSnapshot]:
        async with self._session_factory() as db:
            row = (await db.execute(
                select(Chapter.id, Chapter.novel_id, Chapter.chapter_number, Chapter.view_count)
                .where(Chapter.id == chapter_id)
            )).one_or_none()
        if row is None:
            return None
        return ChapterSnapshot(
            id=row.id,
            novel_id=row.novel_id,
            chapter_number=row.chapter_number,
            view_count=row.view_count or 0,
            counted=counted,
        )

    async def _increment(self, chapter_id: uuid.UUID) -> Optional[uuid.UUID]:
        """view_count = view_count + 1 (read-modify-write 아님). 소속 소설 ID 반환."""
        async with self._session_factory() as db:
            result = await db.execute(
                update(Chapter)
                .where(Chapter.id == chapter_id)
                .values(view_count=Chapter.view_count + 1, updated_at=Chapter.updated_at)
                .execution_options(synchronize_session=False)
            )
            novel_id = (await db.execute(
                select(Chapter.novel_id).where(Chapter.id == chapter_id)
            )).scalar_one_or_none()
            await db.commit()
        if result.rowcount == 0:
            return None
        return novel_id

    async def _touch_novel(self, novel_id: uuid.UUID) -> None:
        async with self._session_factory() as db:
            await db.execute(
                update(Novel)
                .where(Novel.id == novel_id)
                .values(last_active_at=utcnow(), updated_at=Novel.updated_at)
                .execution_options(synchronize_session=False)
            )
            await db.commit()

    async def record_view(self, chapter_id: uuid.UUID, identity: ViewIdentity) -> Optional[ChapterSnapshot]:
        """조회 1건 반영 후 회차 스냅샷 반환 (회차가 없으면 None)"""
        should_count = await self._dedup.check_and_record(chapter_id, identity)
        if not should_count:
            return await self._snapshot(chapter_id, counted=False)

        try:
            novel_id = await self._increment(chapter_id)
        except Exception:
            logger.exception(f"[view] 회차 {chapter_id} 조회수 증가 실패")
            return await self._snapshot(chapter_id, counted=False)

        if novel_id is None:
            logger.warning(f"[view] 회차 {chapter_id} 없음, 조회수 증가 생략")
            return None

        try:
            await self._recomputer.update_readers(novel_id)
            await self._touch_novel(novel_id)
        except Exception:
            logger.exception(f"[view] 소설 {novel_id} 조회 통계 갱신 실패")

        return await self._snapshot(chapter_id, counted=True)

    async def record_chapter_view(self, chapter_id: uuid.UUID, identity: ViewIdentity) -> Optional[ChapterSnapshot]:
        """읽기 경로용: 어떤 오류도 호출자에게 올리지 않는다"""
        try:
            return await self.record_view(chapter_id, identity)
        except Exception:
            logger.exception(f"[view] 회차 {chapter_id} 조회 처리 실패")
            return None
