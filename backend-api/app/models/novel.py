"""
소설 모델

word_count / total_chapters / readers 는 회차 집합에서, collections 는 보관함 기록에서만
계산되는 파생 필드로, AggregateRecomputer 외에는 쓰지 않는다.
"""

from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from enum import Enum
import uuid

from app.core.database import Base, UUID, JSON


class NovelStatus(str, Enum):
    """연재 상태"""
    ONGOING = "ongoing"
    COMPLETED = "completed"
    PAUSED = "paused"


class Novel(Base):
    """소설 모델"""
    __tablename__ = "novels"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4, index=True)
    # 실제 작가 계정 (탈퇴 시 NULL, 필명만 남는다)
    creator_id = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(100), nullable=False)
    # 독자에게 보이는 필명
    author_name = Column(String(50), nullable=False)
    cover_url = Column(String(500), nullable=True)
    short_description = Column(String(200), nullable=False)
    long_description = Column(Text, nullable=False)
    categories = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default=NovelStatus.ONGOING.value, index=True)

    # 파생 통계
    word_count = Column(Integer, nullable=False, default=0)
    total_chapters = Column(Integer, nullable=False, default=0)
    readers = Column(Integer, nullable=False, default=0, index=True)

    # 보관함에 담은 사용자 수 (favorites 에서 다시 계산)
    collections = Column(Integer, nullable=False, default=0)

    # 최신 회차 (회차 번호가 가장 큰 회차, 회차가 없으면 NULL)
    latest_chapter_id = Column(
        UUID(),
        ForeignKey("chapters.id", ondelete="SET NULL", use_alter=True, name="fk_novels_latest_chapter_id_chapters"),
        nullable=True,
    )
    # 마지막으로 조회수가 집계된 시각
    last_active_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # 관계 설정
    creator = relationship("User", back_populates="novels")
    chapters = relationship(
        "Chapter",
        back_populates="novel",
        foreign_keys="Chapter.novel_id",
        passive_deletes=True,
    )
    latest_chapter = relationship("Chapter", foreign_keys=[latest_chapter_id], post_update=True)

    def __repr__(self):
        return f"<Novel(id={self.id}, title={self.title})>"
