"""
읽기 기록 모델
"""

from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base, UUID


class ReadingHistory(Base):
    """사용자별/소설별 마지막 읽기 기록"""
    __tablename__ = "reading_histories"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    novel_id = Column(UUID(), ForeignKey("novels.id", ondelete="CASCADE"), nullable=False, index=True)
    last_chapter_id = Column(UUID(), ForeignKey("chapters.id", ondelete="SET NULL"), nullable=True)
    # 0~100 (%)
    reading_progress = Column(Float, nullable=False, default=0.0)
    last_read_at = Column(DateTime(timezone=True), nullable=False)
    # 누적 읽기 시간(분), 읽을 때마다 1분씩 단순 가산
    total_reading_time = Column(Integer, nullable=False, default=0)

    # 한 유저는 소설당 하나의 기록만 가진다
    __table_args__ = (UniqueConstraint('user_id', 'novel_id', name='uq_reading_history_user_novel'),)

    user = relationship("User", back_populates="reading_histories")
    novel = relationship("Novel")
    last_chapter = relationship("Chapter")

    def __repr__(self):
        return f"<ReadingHistory(user_id={self.user_id}, novel_id={self.novel_id})>"
