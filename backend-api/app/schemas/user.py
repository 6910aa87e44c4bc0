"""
사용자/읽기 기록 관련 Pydantic 스키마
"""

from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime
import uuid


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    username: str
    is_active: bool = True
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime


class ReadingHistoryNovel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    author_name: str
    cover_url: Optional[str] = None
    status: str


class ReadingHistoryChapter(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    chapter_number: int
    title: str


class ReadingHistoryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    novel: ReadingHistoryNovel
    last_chapter: Optional[ReadingHistoryChapter] = None
    reading_progress: float = 0.0
    last_read_at: datetime
    total_reading_time: int = 0


class ReadingHistoryListResponse(BaseModel):
    items: List[ReadingHistoryItem]
    skip: int
    limit: int
