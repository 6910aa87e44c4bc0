"""
회차 조회 중복 방지 저장소

같은 식별자가 윈도우(W) 안에 같은 회차를 다시 읽으면 조회수를 올리지 않는다.
저장소 장애 시에는 집계하지 않는다(중복 집계보다 누락을 택함).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, Optional
import logging
import uuid

from sqlalchemy import select, update, delete, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import utcnow, as_utc
from app.models.chapter_view_record import ChapterViewRecord

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 24 * 60 * 60

IdentityScope = Literal["user", "client", "ip"]


@dataclass(frozen=True)
class ViewIdentity:
    """조회 식별자: user_id > (client_id + ip_address) > ip_address 순으로 사용"""
    user_id: Optional[uuid.UUID] = None
    client_id: Optional[str] = None
    ip_address: Optional[str] = None

    @classmethod
    def resolve(
        cls,
        user_id: Optional[uuid.UUID] = None,
        client_id: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> "ViewIdentity":
        """우선순위에 맞게 사용하지 않는 필드를 비운 식별자 생성"""
        if user_id:
            return cls(user_id=user_id)
        client_id = (client_id or "").strip() or None
        ip_address = (ip_address or "").strip() or None
        if client_id and ip_address:
            return cls(client_id=client_id, ip_address=ip_address)
        if ip_address:
            return cls(ip_address=ip_address)
        return cls()

    @property
    def scope(self) -> Optional[IdentityScope]:
        if self.user_id:
            return "user"
        if self.client_id and self.ip_address:
            return "client"
        if self.ip_address:
            return "ip"
        return None


class ViewDedupStore:
    """(회차, 식별자) 단위 조회 기록. check_and_record 로 집계 여부를 결정한다."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
    ):
        self._session_factory = session_factory
        self.window_seconds = window_seconds

    @staticmethod
    def _scope_filter(chapter_id: uuid.UUID, identity: ViewIdentity):
        scope = identity.scope
        if scope == "user":
            return and_(
                ChapterViewRecord.chapter_id == chapter_id,
                ChapterViewRecord.user_id == identity.user_id,
            )
        if scope == "client":
            return and_(
                ChapterViewRecord.chapter_id == chapter_id,
                ChapterViewRecord.user_id.is_(None),
                ChapterViewRecord.client_id == identity.client_id,
                ChapterViewRecord.ip_address == identity.ip_address,
            )
        return and_(
            ChapterViewRecord.chapter_id == chapter_id,
            ChapterViewRecord.user_id.is_(None),
            ChapterViewRecord.client_id.is_(None),
            ChapterViewRecord.ip_address == identity.ip_address,
        )

    async def check_and_record(
        self,
        chapter_id: uuid.UUID,
        identity: ViewIdentity,
        window_seconds: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        이번 조회를 집계해야 하면 True.

        - 기록 없음: 새 기록 삽입 후 True (동시 삽입 경쟁에서 진 쪽은 False)
        - 기록 있음, 윈도우 이내: False
        - 기록 있음, 윈도우 경과: 시각 갱신 후 True
        저장소 오류는 로그만 남기고 False.
        """
        if identity.scope is None:
            logger.info(f"[view-dedup] 식별 정보 없음, 집계 안 함 chapter={chapter_id}")
            return False

        window = timedelta(seconds=self.window_seconds if window_seconds is None else window_seconds)
        now = now or utcnow()
        try:
            async with self._session_factory() as db:
                return await self._check_and_record(db, chapter_id, identity, window, now)
        except SQLAlchemyError as e:
            logger.warning(f"[view-dedup] 조회 기록 저장소 오류, 집계 안 함 chapter={chapter_id}: {e}")
            return False
        except Exception as e:
            logger.error(f"[view-dedup] 조회 기록 판단 실패, 집계 안 함 chapter={chapter_id}: {e}", exc_info=True)
            return False

    async def _check_and_record(
        self,
        db: AsyncSession,
        chapter_id: uuid.UUID,
        identity: ViewIdentity,
        window: timedelta,
        now: datetime,
    ) -> bool:
        record = (await db.execute(
            select(ChapterViewRecord).where(self._scope_filter(chapter_id, identity))
        )).scalars().first()

        if record is not None:
            age = now - as_utc(record.viewed_at)
            if age < window:
                return False
            # 저장소 만료 시점과 무관하게 나이만으로 판단, 기록은 제자리 갱신.
            # 같은 만료 기록을 동시에 갱신하면 한 쪽만 rowcount=1
            result = await db.execute(
                update(ChapterViewRecord)
                .where(
                    ChapterViewRecord.id == record.id,
                    ChapterViewRecord.viewed_at <= now - window,
                )
                .values(viewed_at=now)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            return result.rowcount == 1

        db.add(ChapterViewRecord(
            chapter_id=chapter_id,
            user_id=identity.user_id,
            client_id=identity.client_id,
            ip_address=identity.ip_address,
            viewed_at=now,
        ))
        try:
            await db.commit()
        except IntegrityError:
            # 유니크 인덱스 충돌 = 동시 요청이 먼저 기록함
            await db.rollback()
            logger.info(f"[view-dedup] 동시 첫 조회 경쟁 패배, 이미 집계됨 chapter={chapter_id} scope={identity.scope}")
            return False
        return True

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        """윈도우가 지난 기록 물리 삭제. 정확성은 이 작업 시점에 의존하지 않는다."""
        cutoff = (now or utcnow()) - timedelta(seconds=self.window_seconds)
        async with self._session_factory() as db:
            result = await db.execute(
                delete(ChapterViewRecord)
                .where(ChapterViewRecord.viewed_at <= cutoff)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        purged = result.rowcount or 0
        if purged:
            logger.info(f"[view-dedup] 만료 조회 기록 {purged}건 삭제")
        return purged
