"""
관리자 API: 통계 보정
"""

from fastapi import APIRouter, Depends, HTTPException
import logging
import uuid

from app.api.deps import get_stats_services
from app.core.security import get_current_admin_user
from app.models.user import User
from app.schemas.stats import ReconcileAllResponse, ReconcileOneResponse
from app.services.stats import StatsServices

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/novels/{novel_id}/reconcile", response_model=ReconcileOneResponse)
async def reconcile_novel(
    novel_id: uuid.UUID,
    admin: User = Depends(get_current_admin_user),
    stats: StatsServices = Depends(get_stats_services),
):
    """소설 하나의 파생 통계 재계산 (보정 전/후 값 반환)"""
    try:
        result = await stats.reconciliation.reconcile_one(novel_id)
    except Exception as e:
        logger.exception(f"[admin] 소설 {novel_id} 통계 보정 실패")
        raise HTTPException(status_code=500, detail=f"통계 보정 실패: {str(e)}")
    if result is None:
        raise HTTPException(status_code=404, detail="소설을 찾을 수 없습니다")
    logger.info(f"[admin] {admin.id} 소설 {novel_id} 통계 보정 (변경={result.changed})")
    return ReconcileOneResponse(
        novel_id=result.novel_id,
        before=result.before.as_dict(),
        after=result.after.as_dict(),
        changed=result.changed,
    )


@router.post("/reconcile", response_model=ReconcileAllResponse)
async def reconcile_all_novels(
    admin: User = Depends(get_current_admin_user),
    stats: StatsServices = Depends(get_stats_services),
):
    """전체 소설 통계 보정. 개별 실패는 집계만 하고 계속 진행한다."""
    summary = await stats.reconciliation.reconcile_all()
    logger.info(
        f"[admin] {admin.id} 전체 통계 보정: total={summary.total}, updated={summary.updated}, failed={summary.failed}"
    )
    return ReconcileAllResponse(
        total=summary.total,
        updated=summary.updated,
        failed=summary.failed,
        corrected=summary.corrected,
        failures=summary.failures,
    )
