"""
소설/회차 관련 Pydantic 스키마
"""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Any, Optional, List, Literal
from datetime import datetime
import json
import uuid


NovelStatusLiteral = Literal["ongoing", "completed", "paused"]


def normalize_string_list(value: Any) -> List[str]:
    """
    카테고리/태그 입력 정규화.
    단일 문자열, 쉼표 구분 문자열, JSON 배열 문자열, 배열을 모두 순서 있는 문자열 목록으로 바꾼다.
    """
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return []
        if raw.startswith("["):
            try:
                value = json.loads(raw)
            except json.JSONDecodeError:
                value = raw.strip("[]").split(",")
        else:
            value = raw.split(",")
    if not isinstance(value, (list, tuple)):
        value = [value]
    items: List[str] = []
    for item in value:
        text = str(item).strip().strip('"').strip()
        if text and text not in items:
            items.append(text)
    return items


# ---- 소설 ----
class NovelBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    author_name: str = Field(..., min_length=1, max_length=50)
    short_description: str = Field(..., min_length=1, max_length=200)
    long_description: str = Field(..., min_length=1)
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    cover_url: Optional[str] = Field(None, max_length=500)

    @field_validator("categories", "tags", mode="before")
    @classmethod
    def _normalize_lists(cls, v):
        return normalize_string_list(v)


class NovelCreate(NovelBase):
    """소설 생성 요청 (통계 필드는 받지 않는다)"""
    status: NovelStatusLiteral = "ongoing"


class NovelUpdate(BaseModel):
    """소설 수정 요청"""
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    author_name: Optional[str] = Field(None, min_length=1, max_length=50)
    short_description: Optional[str] = Field(None, min_length=1, max_length=200)
    long_description: Optional[str] = Field(None, min_length=1)
    categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    cover_url: Optional[str] = Field(None, max_length=500)

    @field_validator("categories", "tags", mode="before")
    @classmethod
    def _normalize_lists(cls, v):
        if v is None:
            return None
        return normalize_string_list(v)


class NovelStatusUpdate(BaseModel):
    status: NovelStatusLiteral


class ChapterBrief(BaseModel):
    """목록/내비게이션용 회차 요약"""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    chapter_number: int
    title: str
    is_extra: bool = False
    is_premium: bool = False


class NovelResponse(NovelBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    creator_id: Optional[uuid.UUID] = None
    status: str
    word_count: int = 0
    total_chapters: int = 0
    readers: int = 0
    collections: int = 0
    latest_chapter_id: Optional[uuid.UUID] = None
    last_active_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class NovelDetail(NovelResponse):
    latest_chapter: Optional[ChapterBrief] = None


class NovelListResponse(BaseModel):
    novels: List[NovelResponse]
    total: int
    skip: int
    limit: int


# ---- 회차 ----
class ChapterCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1)
    # 비우면 다음 번호 자동 부여
    chapter_number: Optional[int] = Field(None, ge=0)
    is_premium: bool = False
    price: int = Field(0, ge=0)
    # 비우면 완결 소설에서는 번외로 간주
    is_extra: Optional[bool] = None


class ChapterUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    content: Optional[str] = Field(None, min_length=1)
    chapter_number: Optional[int] = Field(None, ge=0)
    is_premium: Optional[bool] = None
    price: Optional[int] = Field(None, ge=0)
    is_extra: Optional[bool] = None


class ChapterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    novel_id: uuid.UUID
    chapter_number: int
    title: str
    content: str
    word_count: int = 0
    view_count: int = 0
    is_extra: bool = False
    is_premium: bool = False
    price: int = 0
    created_at: datetime
    updated_at: datetime


class ChapterListItem(ChapterBrief):
    word_count: int = 0
    view_count: int = 0
    created_at: datetime


class ChapterBulkDelete(BaseModel):
    """지정하지 않으면 소설의 모든 회차 삭제"""
    chapter_ids: Optional[List[uuid.UUID]] = None


class ChapterBulkDeleteResponse(BaseModel):
    deleted: int


class NovelBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    author_name: str


class ChapterNavigation(BaseModel):
    prev: Optional[ChapterBrief] = None
    next: Optional[ChapterBrief] = None


class ChapterReadResponse(BaseModel):
    """독자용 회차 본문 응답"""
    novel: NovelBrief
    chapter: ChapterResponse
    navigation: ChapterNavigation
