"""
통계 관련 Pydantic 스키마
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
import uuid


class NovelAggregatesSchema(BaseModel):
    word_count: int = 0
    total_chapters: int = 0
    readers: int = 0


class ReconcileOneResponse(BaseModel):
    novel_id: uuid.UUID
    before: NovelAggregatesSchema
    after: NovelAggregatesSchema
    changed: bool


class ReconcileFailure(BaseModel):
    novel_id: str
    error: str


class ReconcileAllResponse(BaseModel):
    total: int
    updated: int
    failed: int
    corrected: int = 0
    failures: List[ReconcileFailure] = Field(default_factory=list)


class AuthorStatsSchema(BaseModel):
    works_count: int = 0
    total_word_count: int = 0
    total_readers: int = 0
    total_chapters: int = 0


class AuthorNovelItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    author_name: str
    cover_url: Optional[str] = None
    readers: int = 0
    collections: int = 0
    updated_at: datetime


class AuthorStatsResponse(BaseModel):
    author_stats: AuthorStatsSchema
    popular_novels: List[AuthorNovelItem]
    recent_novels: List[AuthorNovelItem]
