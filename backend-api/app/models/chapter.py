"""
회차 모델
"""

from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base, UUID


class Chapter(Base):
    __tablename__ = "chapters"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4, index=True)
    novel_id = Column(UUID(), ForeignKey("novels.id", ondelete="CASCADE"), nullable=False, index=True)
    chapter_number = Column(Integer, nullable=False)
    title = Column(String(100), nullable=False)
    content = Column(Text, nullable=False)
    # 공백 제외 글자 수, 본문 변경 시 재계산
    word_count = Column(Integer, nullable=False, default=0)
    # 조회수 (ViewCounter 에서만 증가)
    view_count = Column(Integer, nullable=False, default=0)
    # 번외편 여부
    is_extra = Column(Boolean, nullable=False, default=False)
    # 유료 회차
    is_premium = Column(Boolean, nullable=False, default=False)
    price = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('novel_id', 'chapter_number', 'is_extra', name='uq_chapter_novel_number_extra'),
    )

    # 관계
    novel = relationship("Novel", back_populates="chapters", foreign_keys=[novel_id])

    def __repr__(self):
        return f"<Chapter(novel_id={self.novel_id}, chapter_number={self.chapter_number}, is_extra={self.is_extra})>"
