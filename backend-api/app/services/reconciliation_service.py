"""
통계 보정 작업

소설 파생 통계를 회차/보관함 데이터로부터 다시 계산해 누적 오차를 바로잡는다.
몇 번을 실행해도 결과는 같다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.novel import Novel
from app.services.aggregate_service import AggregateRecomputer, NovelAggregates
from app.services.lifecycle_service import ContentLifecycleCoordinator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    novel_id: uuid.UUID
    before: NovelAggregates
    after: NovelAggregates

    @property
    def changed(self) -> bool:
        return self.before != self.after


@dataclass
class ReconcileSummary:
    total: int = 0
    updated: int = 0
    failed: int = 0
    # 실제 값이 달라졌던 소설 수
    corrected: int = 0
    failures: List[dict] = field(default_factory=list)


class ReconciliationJob:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        recomputer: AggregateRecomputer,
        coordinator: ContentLifecycleCoordinator,
    ):
        self._session_factory = session_factory
        self._recomputer = recomputer
        self._coordinator = coordinator

    async def reconcile_one(self, novel_id: uuid.UUID) -> Optional[ReconcileResult]:
        """소설 하나 보정. 소설이 없으면 None. 재계산 오류는 그대로 올린다."""
        async with self._session_factory() as db:
            novel = await db.get(Novel, novel_id)
            if novel is None:
                logger.warning(f"[reconcile] 소설 {novel_id} 없음")
                return None
            before = NovelAggregates.from_novel(novel)

        await self._coordinator.refresh_latest_chapter(novel_id)
        await self._recomputer.update_collections(novel_id)
        after = await self._recomputer.recompute_novel(novel_id)
        if after is None:
            return None

        result = ReconcileResult(novel_id=novel_id, before=before, after=after)
        if result.changed:
            logger.info(f"[reconcile] 소설 {novel_id} 보정: {before.as_dict()} → {after.as_dict()}")
        return result

    async def reconcile_all(self) -> ReconcileSummary:
        """전체 소설 보정. 개별 실패는 집계만 하고 계속 진행한다."""
        async with self._session_factory() as db:
            novel_ids = list((await db.execute(
                select(Novel.id).order_by(Novel.created_at.asc())
            )).scalars().all())

        summary = ReconcileSummary(total=len(novel_ids))
        logger.info(f"[reconcile] 전체 {summary.total}개 소설 통계 보정 시작")
        for novel_id in novel_ids:
            try:
                result = await self.reconcile_one(novel_id)
            except Exception as e:
                logger.exception(f"[reconcile] 소설 {novel_id} 보정 실패")
                summary.failed += 1
                summary.failures.append({"novel_id": str(novel_id), "error": str(e)})
                continue
            if result is None:
                # 목록 조회 이후 삭제된 소설
                summary.failed += 1
                summary.failures.append({"novel_id": str(novel_id), "error": "not found"})
                continue
            summary.updated += 1
            if result.changed:
                summary.corrected += 1

        logger.info(
            f"[reconcile] 완료: 전체 {summary.total}, 성공 {summary.updated}, "
            f"실패 {summary.failed}, 보정 {summary.corrected}"
        )
        return summary
