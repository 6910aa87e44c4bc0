"""
사용자 모델
"""

from sqlalchemy import Column, String, Boolean, Integer, DateTime, func
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base, UUID


class User(Base):
    """사용자 모델"""
    __tablename__ = "users"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(50), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, default=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    avatar_url = Column(String(500))
    bio = Column(String(1000))

    # 작가 통계 (요청 시 재계산, 항상 최신은 아님)
    author_works_count = Column(Integer, default=0, nullable=False)
    author_total_word_count = Column(Integer, default=0, nullable=False)
    author_total_readers = Column(Integer, default=0, nullable=False)
    author_total_chapters = Column(Integer, default=0, nullable=False)
    author_stats_updated_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # 관계 설정
    novels = relationship("Novel", back_populates="creator")
    reading_histories = relationship("ReadingHistory", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, username={self.username})>"
