"""
댓글 관련 Pydantic 스키마
"""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime
import uuid
import re


def _sanitize_comment(value: str) -> str:
    text = re.sub(r'<[^>]*>', '', str(value)).strip()
    if not text:
        raise ValueError('댓글 내용을 입력해주세요.')
    if len(text) > 1000:
        raise ValueError('댓글은 최대 1000자까지 입력할 수 있습니다.')
    return text


class CommentBase(BaseModel):
    """댓글 기본 스키마"""
    content: str = Field(..., min_length=1, max_length=1000)

    @field_validator('content', mode='before')
    @classmethod
    def sanitize_content(cls, v):
        return _sanitize_comment(v)


class CommentCreate(CommentBase):
    """댓글 생성 스키마. 회차를 지정하지 않으면 소설 전체 댓글."""
    novel_id: uuid.UUID
    chapter_id: Optional[uuid.UUID] = None


class CommentUpdate(CommentBase):
    """댓글 수정 스키마"""
    pass


class ReplyCreate(CommentBase):
    """답글 생성 스키마"""
    reply_to_user_id: Optional[uuid.UUID] = None


class CommentAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    avatar_url: Optional[str] = None


class CommentResponse(BaseModel):
    """댓글 응답 스키마. 삭제된 댓글은 내용 없이 자리만 남는다."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    novel_id: uuid.UUID
    chapter_id: Optional[uuid.UUID] = None
    chapter_number: Optional[int] = None
    parent_id: Optional[uuid.UUID] = None
    content: str
    like_count: int = 0
    is_deleted: bool = False
    user: Optional[CommentAuthor] = None
    reply_to_user: Optional[CommentAuthor] = None
    created_at: datetime
    updated_at: datetime


class CommentWithReplies(CommentResponse):
    replies: List[CommentResponse] = Field(default_factory=list)


class CommentListResponse(BaseModel):
    comments: List[CommentWithReplies]
    total: int
    skip: int
    limit: int


class CommentLikeResponse(BaseModel):
    comment_id: uuid.UUID
    liked: bool
    like_count: int
