"""
파생 통계 재계산

소설: word_count / total_chapters / readers 는 항상 현재 회차 집합에서 다시 계산한다.
보관 수: collections 는 보관함 기록 수에서 다시 계산한다.
작가: 작품 수 / 총 글자 수 / 총 조회수 / 총 회차 수 는 요청 시에만 재계산한다.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Optional
import logging
import uuid

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import utcnow
from app.models.chapter import Chapter
from app.models.favorite import Favorite
from app.models.novel import Novel
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NovelAggregates:
    word_count: int = 0
    total_chapters: int = 0
    readers: int = 0

    @classmethod
    def from_novel(cls, novel: Novel) -> "NovelAggregates":
        return cls(
            word_count=novel.word_count or 0,
            total_chapters=novel.total_chapters or 0,
            readers=novel.readers or 0,
        )

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AuthorAggregates:
    works_count: int = 0
    total_word_count: int = 0
    total_readers: int = 0
    total_chapters: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


async def compute_novel_aggregates(db: AsyncSession, novel_id: uuid.UUID) -> NovelAggregates:
    """회차 테이블에서 소설 통계 계산 (쓰기 없음)"""
    row = (await db.execute(
        select(
            func.coalesce(func.sum(Chapter.word_count), 0),
            func.count(Chapter.id),
            func.coalesce(func.sum(Chapter.view_count), 0),
        ).where(Chapter.novel_id == novel_id)
    )).one()
    return NovelAggregates(word_count=int(row[0]), total_chapters=int(row[1]), readers=int(row[2]))


class AggregateRecomputer:
    """소설/작가 파생 필드 재계산기"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def recompute_novel(self, novel_id: uuid.UUID) -> Optional[NovelAggregates]:
        """세 필드를 한 번에 갱신. 소설이 없으면 경고 후 None."""
        async with self._session_factory() as db:
            exists = (await db.execute(select(Novel.id).where(Novel.id == novel_id))).scalar_one_or_none()
            if exists is None:
                logger.warning(f"[aggregate] 소설 {novel_id} 없음, 재계산 생략")
                return None

            aggregates = await compute_novel_aggregates(db, novel_id)
            # 파생 필드 갱신은 updated_at 을 건드리지 않는다
            await db.execute(
                update(Novel)
                .where(Novel.id == novel_id)
                .values(
                    word_count=aggregates.word_count,
                    total_chapters=aggregates.total_chapters,
                    readers=aggregates.readers,
                    updated_at=Novel.updated_at,
                )
                .execution_options(synchronize_session=False)
            )
            await db.commit()

        logger.info(
            f"[aggregate] 소설 {novel_id} 재계산: 글자수={aggregates.word_count}, "
            f"회차={aggregates.total_chapters}, 조회수={aggregates.readers}"
        )
        return aggregates

    async def update_readers(self, novel_id: uuid.UUID) -> Optional[int]:
        """조회수 경로 전용: readers 만 재계산"""
        async with self._session_factory() as db:
            total_views = (await db.execute(
                select(func.coalesce(func.sum(Chapter.view_count), 0)).where(Chapter.novel_id == novel_id)
            )).scalar_one()
            result = await db.execute(
                update(Novel)
                .where(Novel.id == novel_id)
                .values(readers=int(total_views), updated_at=Novel.updated_at)
                .execution_options(synchronize_session=False)
            )
            await db.commit()

        if result.rowcount == 0:
            logger.warning(f"[aggregate] 소설 {novel_id} 없음, 조회수 갱신 생략")
            return None
        return int(total_views)

    async def update_collections(self, novel_id: uuid.UUID) -> Optional[int]:
        """보관함 변경 시: collections 만 재계산"""
        async with self._session_factory() as db:
            total = (await db.execute(
                select(func.count(Favorite.id)).where(Favorite.novel_id == novel_id)
            )).scalar_one()
            result = await db.execute(
                update(Novel)
                .where(Novel.id == novel_id)
                .values(collections=int(total), updated_at=Novel.updated_at)
                .execution_options(synchronize_session=False)
            )
            await db.commit()

        if result.rowcount == 0:
            logger.warning(f"[aggregate] 소설 {novel_id} 없음, 보관 수 갱신 생략")
            return None
        return int(total)

    async def recompute_author(self, user_id: uuid.UUID) -> Optional[AuthorAggregates]:
        """작가 통계 재계산 (작품의 캐시 필드 기준, 회차 수는 직접 집계)"""
        async with self._session_factory() as db:
            user = await db.get(User, user_id)
            if user is None:
                logger.warning(f"[aggregate] 사용자 {user_id} 없음, 작가 통계 생략")
                return None

            row = (await db.execute(
                select(
                    func.count(Novel.id),
                    func.coalesce(func.sum(Novel.word_count), 0),
                    func.coalesce(func.sum(Novel.readers), 0),
                ).where(Novel.creator_id == user_id)
            )).one()
            total_chapters = (await db.execute(
                select(func.count(Chapter.id))
                .join(Novel, Chapter.novel_id == Novel.id)
                .where(Novel.creator_id == user_id)
            )).scalar_one()

            aggregates = AuthorAggregates(
                works_count=int(row[0]),
                total_word_count=int(row[1]),
                total_readers=int(row[2]),
                total_chapters=int(total_chapters),
            )
            await db.execute(
                update(User)
                .where(User.id == user_id)
                .values(
                    author_works_count=aggregates.works_count,
                    author_total_word_count=aggregates.total_word_count,
                    author_total_readers=aggregates.total_readers,
                    author_total_chapters=aggregates.total_chapters,
                    author_stats_updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        return aggregates
