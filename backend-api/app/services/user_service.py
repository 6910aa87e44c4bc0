"""
사용자 관련 서비스
"""

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Union, Dict, Any
import logging
import uuid

from app.models.novel import Novel
from app.models.reading_history import ReadingHistory
from app.models.user import User
from app.services.aggregate_service import AggregateRecomputer, AuthorAggregates
from app.services.comment_service import remove_user_likes
from app.services.favorite_service import remove_all_favorites

logger = logging.getLogger(__name__)


async def get_user_by_id(db: AsyncSession, user_id: Union[str, uuid.UUID]) -> Optional[User]:
    """ID로 사용자 조회"""
    if not isinstance(user_id, uuid.UUID):
        try:
            user_id = uuid.UUID(str(user_id))
        except ValueError:
            return None
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """이메일로 사용자 조회"""
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_author_dashboard(
    db: AsyncSession,
    recomputer: AggregateRecomputer,
    user: User,
    top_n: int = 5,
) -> Dict[str, Any]:
    """작가 통계를 요청 시점에 재계산하고 인기/최근 작품과 함께 반환"""
    aggregates = await recomputer.recompute_author(user.id)
    if aggregates is None:
        aggregates = AuthorAggregates()

    popular = (await db.execute(
        select(Novel)
        .where(Novel.creator_id == user.id)
        .order_by(Novel.readers.desc(), Novel.updated_at.desc())
        .limit(top_n)
    )).scalars().all()
    recent = (await db.execute(
        select(Novel)
        .where(Novel.creator_id == user.id)
        .order_by(Novel.updated_at.desc())
        .limit(top_n)
    )).scalars().all()

    return {
        "author_stats": aggregates.as_dict(),
        "popular_novels": popular,
        "recent_novels": recent,
    }


async def delete_account(
    db: AsyncSession,
    recomputer: AggregateRecomputer,
    user: User,
    anonymous_author_name: str,
) -> None:
    """
    계정 삭제.
    읽기 기록/보관함/좋아요는 지우고 보관 수와 좋아요 수를 다시 센다.
    작성한 소설과 댓글은 남기되 작가 정보를 익명으로 바꾼다.
    """
    user_id = user.id
    await remove_all_favorites(db, recomputer, user_id)
    await remove_user_likes(db, user_id)
    await db.execute(delete(ReadingHistory).where(ReadingHistory.user_id == user_id))
    result = await db.execute(
        update(Novel)
        .where(Novel.creator_id == user_id)
        .values(creator_id=None, author_name=anonymous_author_name)
        .execution_options(synchronize_session=False)
    )
    await db.delete(user)
    await db.commit()
    logger.info(f"[user] 계정 삭제 id={user_id}, 익명 처리된 작품 {result.rowcount or 0}건")
