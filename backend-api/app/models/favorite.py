"""
보관함(즐겨찾기) / 폴더 모델
"""

from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
import uuid

from app.core.database import Base, UUID


DEFAULT_FAVORITE_GROUP = "기본 보관함"


class Favorite(Base):
    """사용자가 보관함에 담은 소설"""
    __tablename__ = "favorites"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    novel_id = Column(UUID(), ForeignKey("novels.id", ondelete="CASCADE"), nullable=False, index=True)
    group = Column(String(50), nullable=False, default=DEFAULT_FAVORITE_GROUP)
    notes = Column(Text, nullable=False, default="")
    order = Column(Integer, nullable=False, default=0)
    added_at = Column(DateTime(timezone=True), server_default=func.now())

    # 한 유저가 같은 소설을 중복으로 담을 수 없도록 제약조건 설정
    __table_args__ = (UniqueConstraint('user_id', 'novel_id', name='uq_favorite_user_novel'),)

    novel = relationship("Novel")

    def __repr__(self):
        return f"<Favorite(user_id={self.user_id}, novel_id={self.novel_id})>"


class Folder(Base):
    """보관함 폴더. 기본 폴더는 모든 보관 소설을 보여주는 가상 폴더다."""
    __tablename__ = "folders"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    icon = Column(String(20), nullable=False, default="📁")
    is_default = Column(Boolean, nullable=False, default=False)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # 폴더 이름은 사용자별로 유일
    __table_args__ = (UniqueConstraint('user_id', 'name', name='uq_folder_user_name'),)

    def __repr__(self):
        return f"<Folder(user_id={self.user_id}, name={self.name})>"


class FavoriteFolder(Base):
    """보관 소설 ↔ 폴더 연결"""
    __tablename__ = "favorite_folders"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    favorite_id = Column(UUID(), ForeignKey("favorites.id", ondelete="CASCADE"), nullable=False, index=True)
    folder_id = Column(UUID(), ForeignKey("folders.id", ondelete="CASCADE"), nullable=False, index=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint('favorite_id', 'folder_id', name='uq_favorite_folder'),)

    favorite = relationship("Favorite")
    folder = relationship("Folder")

    def __repr__(self):
        return f"<FavoriteFolder(favorite_id={self.favorite_id}, folder_id={self.folder_id})>"
