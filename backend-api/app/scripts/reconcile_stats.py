"""
소설 파생 통계 보정 스크립트

사용법:
    python -m app.scripts.reconcile_stats              # 전체 소설
    python -m app.scripts.reconcile_stats <novel_id>   # 소설 하나
"""

import asyncio
import logging
import sys
import uuid

from app.core.config import settings
from app.core.database import AsyncSessionLocal, engine
from app.services.stats import build_stats_services


async def main(novel_id: str | None = None) -> int:
    services = build_stats_services(AsyncSessionLocal, settings)
    try:
        if novel_id:
            result = await services.reconciliation.reconcile_one(uuid.UUID(novel_id))
            if result is None:
                print(f"❌ 소설을 찾을 수 없습니다: {novel_id}")
                return 1
            print(f"✅ before={result.before.as_dict()} after={result.after.as_dict()}")
            return 0

        summary = await services.reconciliation.reconcile_all()
        print(
            f"✅ total={summary.total} updated={summary.updated} "
            f"failed={summary.failed} corrected={summary.corrected}"
        )
        for failure in summary.failures:
            print(f"⚠️ {failure['novel_id']}: {failure['error']}")
        return 0 if summary.failed == 0 else 2
    finally:
        await engine.dispose()


if __name__ == '__main__':
    logging.basicConfig(level=settings.LOG_LEVEL)
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None)))
