"""
통계 관련 Celery 태스크

태스크마다 asyncio.run 으로 새 이벤트 루프를 쓰므로 엔진도 실행 단위로 만들고 정리한다.
"""

from typing import Any, Awaitable, Callable, Optional
import asyncio
import logging

from app.core.celery_app import celery_app
from app.core.config import settings
from app.core.database import create_engine_from_url, create_session_factory
from app.services.stats import StatsServices, build_stats_services

logger = logging.getLogger(__name__)


async def _with_services(fn: Callable[[StatsServices], Awaitable[Any]]) -> Any:
    engine = create_engine_from_url(settings.DATABASE_URL, echo=settings.DEBUG)
    try:
        services = build_stats_services(create_session_factory(engine), settings)
        return await fn(services)
    finally:
        await engine.dispose()


async def purge_expired_view_records_async(services: StatsServices) -> int:
    return await services.dedup_store.purge_expired()


async def reconcile_all_novels_async(services: StatsServices) -> dict:
    summary = await services.reconciliation.reconcile_all()
    return {
        "total": summary.total,
        "updated": summary.updated,
        "failed": summary.failed,
        "corrected": summary.corrected,
    }


@celery_app.task(name="app.tasks.stats_tasks.purge_expired_view_records")
def purge_expired_view_records() -> int:
    purged = asyncio.run(_with_services(purge_expired_view_records_async))
    logger.info(f"[celery] 만료 조회 기록 정리: {purged}건")
    return purged


@celery_app.task(name="app.tasks.stats_tasks.reconcile_all_novels")
def reconcile_all_novels() -> Optional[dict]:
    result = asyncio.run(_with_services(reconcile_all_novels_async))
    logger.info(f"[celery] 전체 통계 보정: {result}")
    return result
