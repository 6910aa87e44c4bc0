"""
회차 조회 기록 모델 - 조회수 중복 집계 방지용

식별 범위별로 회차당 최대 1건:
- 로그인 사용자: (chapter_id, user_id)
- 비로그인: (chapter_id, client_id, ip_address)
- 클라이언트 토큰 없는 비로그인: (chapter_id, ip_address)
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base, UUID


class ChapterViewRecord(Base):
    __tablename__ = "chapter_view_records"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    chapter_id = Column(UUID(), ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    client_id = Column(String(64), nullable=True)
    ip_address = Column(String(64), nullable=True)
    viewed_at = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        Index(
            "uq_view_record_chapter_user",
            "chapter_id", "user_id",
            unique=True,
            sqlite_where=text("user_id IS NOT NULL"),
            postgresql_where=text("user_id IS NOT NULL"),
        ),
        Index(
            "uq_view_record_chapter_client_ip",
            "chapter_id", "client_id", "ip_address",
            unique=True,
            sqlite_where=text("user_id IS NULL AND client_id IS NOT NULL AND ip_address IS NOT NULL"),
            postgresql_where=text("user_id IS NULL AND client_id IS NOT NULL AND ip_address IS NOT NULL"),
        ),
        Index(
            "uq_view_record_chapter_ip",
            "chapter_id", "ip_address",
            unique=True,
            sqlite_where=text("user_id IS NULL AND client_id IS NULL AND ip_address IS NOT NULL"),
            postgresql_where=text("user_id IS NULL AND client_id IS NULL AND ip_address IS NOT NULL"),
        ),
    )

    chapter = relationship("Chapter")

    def __repr__(self):
        return f"<ChapterViewRecord(chapter_id={self.chapter_id}, user_id={self.user_id}, client_id={self.client_id})>"
