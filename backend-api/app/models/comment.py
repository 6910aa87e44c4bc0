"""
댓글 모델

소설 전체 또는 특정 회차에 다는 댓글. 답글은 최상위 댓글 하나에만 매달린다.
"""

from sqlalchemy import Column, Integer, Boolean, Text, DateTime, ForeignKey, UniqueConstraint, Index, func
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base, UUID


class Comment(Base):
    """소설/회차 댓글"""
    __tablename__ = "comments"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4, index=True)
    # 탈퇴한 사용자의 댓글은 작성자 없이 남는다
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    novel_id = Column(UUID(), ForeignKey("novels.id", ondelete="CASCADE"), nullable=False)
    chapter_id = Column(UUID(), ForeignKey("chapters.id", ondelete="SET NULL"), nullable=True)
    # 회차가 삭제돼도 표시용으로 남겨 둔다
    chapter_number = Column(Integer, nullable=True)
    content = Column(Text, nullable=False)

    parent_id = Column(UUID(), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
    reply_to_user_id = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    like_count = Column(Integer, nullable=False, default=0)
    # 소프트 삭제
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_comments_novel_created", "novel_id", "created_at"),
        Index("ix_comments_chapter_created", "chapter_id", "created_at"),
    )

    user = relationship("User", foreign_keys=[user_id])
    reply_to_user = relationship("User", foreign_keys=[reply_to_user_id])
    novel = relationship("Novel")
    chapter = relationship("Chapter")

    def __repr__(self):
        return f"<Comment(id={self.id}, novel_id={self.novel_id}, user_id={self.user_id})>"


class CommentLike(Base):
    """댓글 좋아요"""
    __tablename__ = "comment_likes"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    comment_id = Column(UUID(), ForeignKey("comments.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # 제약 조건 - 사용자는 댓글당 한 번만 좋아요 가능
    __table_args__ = (
        UniqueConstraint('comment_id', 'user_id', name='uq_comment_like_comment_user'),
    )

    def __repr__(self):
        return f"<CommentLike(comment_id={self.comment_id}, user_id={self.user_id})>"
