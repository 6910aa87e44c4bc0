"""
보관함/폴더 관련 Pydantic 스키마
"""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime
import uuid


class FavoriteCreate(BaseModel):
    novel_id: uuid.UUID
    group: Optional[str] = Field(None, max_length=50)


class FavoriteUpdate(BaseModel):
    group: Optional[str] = Field(None, min_length=1, max_length=50)
    notes: Optional[str] = Field(None, max_length=1000)


class FavoriteNovel(BaseModel):
    """보관함 목록에 함께 보여줄 소설 요약"""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    author_name: str
    cover_url: Optional[str] = None
    short_description: str
    status: str
    total_chapters: int = 0
    readers: int = 0
    collections: int = 0
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    updated_at: datetime


class FavoriteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    novel_id: uuid.UUID
    group: str
    notes: str = ""
    order: int = 0
    added_at: datetime


class FavoriteWithNovel(FavoriteResponse):
    novel: Optional[FavoriteNovel] = None


class FavoriteListResponse(BaseModel):
    items: List[FavoriteWithNovel]
    total: int
    skip: int
    limit: int


class FavoriteStatusResponse(BaseModel):
    is_favorite: bool
    favorite_id: Optional[uuid.UUID] = None


# ---- 폴더 ----
class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    icon: str = Field("📁", max_length=20)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v):
        return str(v).strip() if v is not None else v


class FolderUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    icon: Optional[str] = Field(None, max_length=20)
    order: Optional[int] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v):
        return str(v).strip() if v is not None else v


class FolderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    icon: str
    is_default: bool = False
    order: int = 0
    created_at: datetime
    # 폴더 안 보관 소설 수
    count: int = 0


class FavoriteFoldersUpdate(BaseModel):
    """보관 소설이 속할 폴더 목록 (기본 폴더 제외)"""
    folder_ids: List[uuid.UUID] = Field(default_factory=list)
