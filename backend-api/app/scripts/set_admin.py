"""
관리자 권한 부여 스크립트 (통계 보정 API 사용 권한)

사용법:
    python -m app.scripts.set_admin <email>
"""

import asyncio
import sys

from sqlalchemy import update

from app.core.database import AsyncSessionLocal, engine
from app.models.user import User
from app.services.user_service import get_user_by_email


async def set_admin(email: str) -> int:
    try:
        async with AsyncSessionLocal() as db:
            user = await get_user_by_email(db, email)
            if not user:
                print(f"❌ {email} 계정을 찾을 수 없습니다.")
                return 1
            await db.execute(update(User).where(User.id == user.id).values(is_admin=True))
            await db.commit()
            print(f"✅ {user.email} ({user.username})을(를) 관리자로 설정했습니다!")
            return 0
    finally:
        await engine.dispose()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(set_admin(sys.argv[1])))
