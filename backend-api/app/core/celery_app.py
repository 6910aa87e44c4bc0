"""
Celery 백그라운드 작업 설정
"""

from celery import Celery
from app.core.config import settings

celery_app = Celery(
    "reading_platform",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='Asia/Seoul',
    enable_utc=True,
    task_track_started=True,
    task_ignore_result=False,
    result_expires=3600,
    # 태스크 자동 발견
    imports=('app.tasks.stats_tasks',),
    beat_schedule={
        # 만료된 조회 기록 정리 (집계 정확성과는 무관)
        "purge-expired-view-records": {
            "task": "app.tasks.stats_tasks.purge_expired_view_records",
            "schedule": float(settings.VIEW_RECORD_PURGE_INTERVAL_SECONDS),
        },
        # 전체 소설 통계 보정
        "reconcile-all-novels": {
            "task": "app.tasks.stats_tasks.reconcile_all_novels",
            "schedule": float(settings.STATS_RECONCILE_INTERVAL_SECONDS),
        },
    },
)
