"""
조회수/파생 통계 컴포넌트 묶음

프로세스 시작 시 한 번 만들고(app.state, Celery 태스크) 필요한 곳에 넘긴다.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings
from app.services.aggregate_service import AggregateRecomputer
from app.services.lifecycle_service import ContentLifecycleCoordinator
from app.services.reconciliation_service import ReconciliationJob
from app.services.view_counter_service import ViewCounter
from app.services.view_dedup_service import ViewDedupStore


@dataclass
class StatsServices:
    dedup_store: ViewDedupStore
    view_counter: ViewCounter
    recomputer: AggregateRecomputer
    lifecycle: ContentLifecycleCoordinator
    reconciliation: ReconciliationJob


def build_stats_services(
    session_factory: async_sessionmaker[AsyncSession],
    config: Settings,
) -> StatsServices:
    dedup_store = ViewDedupStore(session_factory, window_seconds=config.VIEW_DEDUP_WINDOW_SECONDS)
    recomputer = AggregateRecomputer(session_factory)
    lifecycle = ContentLifecycleCoordinator(session_factory, recomputer)
    return StatsServices(
        dedup_store=dedup_store,
        view_counter=ViewCounter(session_factory, dedup_store, recomputer),
        recomputer=recomputer,
        lifecycle=lifecycle,
        reconciliation=ReconciliationJob(session_factory, recomputer, lifecycle),
    )
